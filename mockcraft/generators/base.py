"""General-purpose generators registered under the ``base`` industry."""

import string
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict

from mockcraft.core.errors import InvalidParamError
from mockcraft.core.models import Column
from mockcraft.generators.params import (
    float_range, get_enum_values, get_int, get_list, get_str, int_range,
    parse_date, parse_datetime, round_half_up, check_range,
)
from mockcraft.generators.registry import (
    DATE_WINDOW, MIN_MAX_FLOAT, MIN_MAX_INT, GeneratorContext, GeneratorSet, ParameterInfo,
)

generators = GeneratorSet("base")

SPECIAL_CHARACTERS = "!@#$%^&*()-_=+[]{};:,.?"

UUID_NAMESPACES = {
    "dns": uuid.NAMESPACE_DNS,
    "url": uuid.NAMESPACE_URL,
    "oid": uuid.NAMESPACE_OID,
    "x500": uuid.NAMESPACE_X500,
}

PHONE_FORMATS = {
    "international": "+1-###-###-####",
    "national": "(###) ###-####",
    "local": "###-####",
}


# Identity / personal

@generators.register(
    "uuid", "Random UUID string", example="3f2b8c1e-4d5a-4e6f-9a7b-1c2d3e4f5a6b",
    parameters=[
        ParameterInfo("version", "int", "UUID version", default=4, options=[1, 3, 4, 5]),
        ParameterInfo("namespace", "string", "Namespace for v3/v5", default="dns",
                      options=sorted(UUID_NAMESPACES)),
        ParameterInfo("name", "string", "Name hashed for v3/v5 (random word if unset)"),
    ],
)
def uuid_value(ctx: GeneratorContext, params: Dict[str, Any]) -> str:
    version = get_int(params, "version", 4)
    if version in (1, 4):
        return str(uuid.UUID(int=ctx.random.getrandbits(128), version=version))
    if version in (3, 5):
        namespace = UUID_NAMESPACES[get_str(params, "namespace", "dns", options=sorted(UUID_NAMESPACES))]
        name = get_str(params, "name") or ctx.faker.pystr(min_chars=8, max_chars=16)
        make = uuid.uuid3 if version == 3 else uuid.uuid5
        return str(make(namespace, name))
    raise InvalidParamError(f"parameter 'version' must be one of 1, 3, 4, 5, got {version}")


@generators.register("first_name", "Given name", example="Maria")
def first_name(ctx, params):
    return ctx.faker.first_name()


@generators.register("last_name", "Family name", example="Lopez")
def last_name(ctx, params):
    return ctx.faker.last_name()


@generators.register("name", "Full name", example="Maria Lopez")
def full_name(ctx, params):
    return ctx.faker.name()


@generators.register("email", "Email address", example="maria.lopez@example.org")
def email(ctx, params):
    return ctx.faker.email()


@generators.register("username", "Login name", example="mlopez84")
def username(ctx, params):
    return ctx.faker.user_name()


@generators.register(
    "phone", "Phone number", example="+1-555-201-3344",
    parameters=[ParameterInfo("format", "string", "Number layout", default="international",
                              options=list(PHONE_FORMATS))],
)
def phone(ctx, params):
    layout = get_str(params, "format", "international", options=list(PHONE_FORMATS))
    return ctx.faker.numerify(PHONE_FORMATS[layout])


@generators.register("address", "Single-line postal address", example="12 Main St, Springfield, IL 62701")
def address(ctx, params):
    return ctx.faker.address().replace("\n", ", ")


@generators.register("ssn", "US social security number", example="123-45-6789")
def ssn(ctx, params):
    return ctx.faker.ssn()


@generators.register(
    "password", "Password with every character class when long enough", example="aK3$x9Lm!pQ2",
    parameters=[ParameterInfo("length", "int", "Password length", default=12, min=1)],
)
def password(ctx: GeneratorContext, params: Dict[str, Any]) -> str:
    length = get_int(params, "length", 12)
    if length < 1:
        raise InvalidParamError(f"parameter 'length' must be positive, got {length}")
    classes = [string.ascii_lowercase, string.ascii_uppercase, string.digits, SPECIAL_CHARACTERS]
    alphabet = "".join(classes)
    if length < len(classes):
        return "".join(ctx.random.choice(alphabet) for _ in range(length))
    chars = [ctx.random.choice(chars) for chars in classes]
    chars.extend(ctx.random.choice(alphabet) for _ in range(length - len(classes)))
    ctx.random.shuffle(chars)
    return "".join(chars)


@generators.register("company", "Company name", example="Acme Holdings")
def company(ctx, params):
    return ctx.faker.company()


@generators.register("job_title", "Job title", example="Data Engineer")
def job_title(ctx, params):
    return ctx.faker.job()


# Text

@generators.register("word", "Single lorem word", example="lorem")
def word(ctx, params):
    return ctx.faker.word()


@generators.register(
    "sentence", "Sentence with a fixed number of words", example="Dolor sit amet consectetur.",
    parameters=[ParameterInfo("word_count", "int", "Words per sentence", default=6, min=1)],
)
def sentence(ctx, params):
    count = get_int(params, "word_count", 6)
    if count < 1:
        raise InvalidParamError(f"parameter 'word_count' must be positive, got {count}")
    return ctx.faker.sentence(nb_words=count, variable_nb_words=False)


@generators.register(
    "paragraph", "Paragraph with a fixed number of sentences",
    parameters=[ParameterInfo("sentence_count", "int", "Sentences per paragraph", default=3, min=1)],
)
def paragraph(ctx, params):
    count = get_int(params, "sentence_count", 3)
    if count < 1:
        raise InvalidParamError(f"parameter 'sentence_count' must be positive, got {count}")
    return ctx.faker.paragraph(nb_sentences=count, variable_nb_sentences=False)


@generators.register(
    "text", "Free text whose length lies within [min, max] characters",
    parameters=[
        ParameterInfo("min", "int", "Minimum characters", default=10, min=0),
        ParameterInfo("max", "int", "Maximum characters", default=200, min=0),
    ],
)
def text(ctx, params):
    low, high = int_range(params, 10, 200)
    if low < 0:
        raise InvalidParamError(f"parameter 'min' must be non-negative, got {low}")
    length = ctx.random.randint(low, high)
    content = ""
    while len(content) < length:
        content = f"{content} {ctx.faker.sentence()}" if content else ctx.faker.sentence()
    return content[:length]


@generators.register("char", "Single ASCII letter", example="q")
def char(ctx, params):
    return ctx.random.choice(string.ascii_letters)


# Numeric

@generators.register("number", "Integer within [min, max]", example="42", parameters=MIN_MAX_INT)
def number(ctx, params):
    low, high = int_range(params, 0, 100)
    return ctx.random.randint(low, high)


generators.add("random_int", number, "Alias of number", example="42", parameters=MIN_MAX_INT)


@generators.register("float", "Floating point number within [min, max]", example="37.42",
                     parameters=MIN_MAX_FLOAT)
def float_value(ctx, params):
    low, high = float_range(params, 0.0, 100.0)
    return bounded_uniform(ctx, low, high, get_int(params, "precision", 2))


generators.add("decimal", float_value, "Decimal number within [min, max]", example="37.42",
               parameters=MIN_MAX_FLOAT)


@generators.register("boolean", "True or false", example="true")
def boolean(ctx, params):
    return ctx.random.random() < 0.5


@generators.register(
    "enum", "Uniform choice from a list",
    parameters=[ParameterInfo("values", "list", "Candidate values", required=True)],
)
def enum(ctx, params):
    return ctx.random.choice(get_enum_values(params))


@generators.register("null", "Always null")
def null(ctx, params):
    return None


# Temporal

def bounded_uniform(ctx: GeneratorContext, low: float, high: float, precision: int) -> float:
    """Uniform float in [low, high] rounded to ``precision`` places."""
    value = round_half_up(ctx.random.uniform(low, high), precision)
    # Rounding can push a value past an inclusive bound
    return min(max(value, low), high)


def _default_window(ctx: GeneratorContext):
    return ctx.now - timedelta(days=365), ctx.now


@generators.register("date", "Date within [start, end]", example="2024-03-18", parameters=DATE_WINDOW)
def date_value(ctx, params):
    start, end = _default_window(ctx)
    low = parse_date(params, "start", start.date())
    high = parse_date(params, "end", end.date())
    check_range(low, high, "start", "end")
    value = low + timedelta(days=ctx.random.randint(0, (high - low).days))
    layout = get_str(params, "format")
    return value.strftime(layout) if layout else value


@generators.register("datetime", "Datetime within [start, end]", example="2024-03-18T09:41:07",
                     parameters=DATE_WINDOW)
def datetime_value(ctx, params):
    start, end = _default_window(ctx)
    low = parse_datetime(params, "start", start)
    high = parse_datetime(params, "end", end)
    check_range(low, high, "start", "end")
    span = int((high - low).total_seconds())
    value = low + timedelta(seconds=ctx.random.randint(0, span))
    layout = get_str(params, "format")
    return value.strftime(layout) if layout else value


generators.add("timestamp", datetime_value, "Timestamp within [start, end]",
               example="2024-03-18T09:41:07", parameters=DATE_WINDOW)


@generators.register("time", "Time of day", example="09:41:07",
                     parameters=[ParameterInfo("format", "string", "strftime pattern")])
def time_value(ctx, params):
    value = datetime.min + timedelta(seconds=ctx.random.randint(0, 86399))
    layout = get_str(params, "format")
    return value.strftime(layout) if layout else value.time()


# Network / business

@generators.register("url", "Web URL", example="https://www.example.com/")
def url(ctx, params):
    return ctx.faker.url()


@generators.register(
    "ip", "IP address", example="192.168.10.4",
    parameters=[ParameterInfo("version", "int", "IP version", default=4, options=[4, 6])],
)
def ip(ctx, params):
    version = get_int(params, "version", 4)
    if version == 4:
        return ctx.faker.ipv4()
    if version == 6:
        return ctx.faker.ipv6()
    raise InvalidParamError(f"parameter 'version' must be 4 or 6, got {version}")


@generators.register(
    "domain", "Domain name", example="example.com",
    parameters=[ParameterInfo("tld", "string", "Top-level domain to use")],
)
def domain(ctx, params):
    tld = get_str(params, "tld")
    if tld:
        return f"{ctx.faker.domain_word()}.{tld.lstrip('.')}"
    return ctx.faker.domain_name()


@generators.register("mac_address", "MAC address", example="02:42:ac:11:00:02")
def mac_address(ctx, params):
    return ctx.faker.mac_address()


@generators.register("credit_card", "Credit card number", example="4111111111111111")
def credit_card(ctx, params):
    return ctx.faker.credit_card_number()


@generators.register("currency", "Currency name", example="Euro")
def currency(ctx, params):
    return ctx.faker.currency_name()


@generators.register("currency_code", "ISO-4217 currency code", example="EUR")
def currency_code(ctx, params):
    return ctx.faker.currency_code()


@generators.register("stock_symbol", "Ticker symbol of 3-4 letters", example="ACME")
def stock_symbol(ctx, params):
    size = ctx.random.randint(3, 4)
    return "".join(ctx.random.choice(string.ascii_uppercase) for _ in range(size))


@generators.register("stock_price", "Share price", example="152.37", parameters=[
    ParameterInfo("min", "float", "Lowest price", default=1.0),
    ParameterInfo("max", "float", "Highest price", default=1000.0),
])
def stock_price(ctx, params):
    low, high = float_range(params, 1.0, 1000.0)
    return bounded_uniform(ctx, low, high, 2)


@generators.register("price", "Price", example="19.99", parameters=[
    ParameterInfo("min", "float", "Lowest price", default=1.0),
    ParameterInfo("max", "float", "Highest price", default=1000.0),
    ParameterInfo("precision", "int", "Decimal places", default=2),
])
def price(ctx, params):
    low, high = float_range(params, 1.0, 1000.0)
    return bounded_uniform(ctx, low, high, get_int(params, "precision", 2))


# Documents

@generators.register(
    "embedded_document", "Nested document built from nested field definitions",
    parameters=[ParameterInfo("fields", "list", "Nested column definitions", required=True)],
)
def embedded_document(ctx, params):
    fields = get_list(params, "fields")
    if not fields:
        raise InvalidParamError("parameter 'fields' must list at least one nested field")
    columns = [field if isinstance(field, Column) else Column.from_dict(field) for field in fields]
    return ctx.engine.generate_row(columns)


@generators.register(
    "array_of_strings", "List of strings produced by another base generator",
    parameters=[
        ParameterInfo("min_count", "int", "Minimum elements", default=1, min=0),
        ParameterInfo("max_count", "int", "Maximum elements", default=5, min=0),
        ParameterInfo("nested_generator", "string", "Base generator for elements", default="word"),
    ],
)
def array_of_strings(ctx, params):
    low, high = int_range(params, 1, 5, "min_count", "max_count")
    nested = get_str(params, "nested_generator", "word")
    count = ctx.random.randint(max(low, 0), high)
    return [str(ctx.engine.generate("base", nested, {})) for _ in range(count)]
