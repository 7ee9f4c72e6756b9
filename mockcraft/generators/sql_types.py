"""Generators producing values for PostgreSQL-style column types.

Geometric, range and full-text values are rendered in PostgreSQL's literal
input syntax so they can be inserted into columns of the matching type.
"""

import ipaddress
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple

from mockcraft.core.errors import InvalidParamError
from mockcraft.generators.params import get_int, get_str, int_range
from mockcraft.generators.registry import GeneratorContext, GeneratorSet, ParameterInfo

generators = GeneratorSet("base")


def _coordinate(ctx: GeneratorContext, low: float = -100.0, high: float = 100.0) -> float:
    return round(ctx.random.uniform(low, high), 2)


def _point(ctx: GeneratorContext) -> Tuple[float, float]:
    return _coordinate(ctx), _coordinate(ctx)


def _format_point(point: Tuple[float, float]) -> str:
    return f"({point[0]},{point[1]})"


def _format_points(points: List[Tuple[float, float]]) -> str:
    return ",".join(_format_point(p) for p in points)


@generators.register("json", "Small JSON object", example='{"id": 7, "active": true}')
def json_value(ctx: GeneratorContext, params: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": ctx.random.randint(1, 10000),
        "name": ctx.faker.word(),
        "active": ctx.random.random() < 0.5,
        "score": round(ctx.random.uniform(0, 100), 2),
        "tags": [ctx.faker.word() for _ in range(ctx.random.randint(1, 3))],
    }


generators.add("jsonb", json_value, "Small JSON object for binary JSON columns")


@generators.register("inet", "Host address", example="10.4.2.19")
def inet(ctx, params):
    return ctx.faker.ipv4()


@generators.register(
    "cidr", "Network address with host bits cleared", example="10.4.0.0/16",
    parameters=[ParameterInfo("prefix", "int", "Prefix length (random 8-30 when unset)", min=0, max=32)],
)
def cidr(ctx, params):
    prefix = get_int(params, "prefix")
    if prefix is None:
        prefix = ctx.random.randint(8, 30)
    if not 0 <= prefix <= 32:
        raise InvalidParamError(f"parameter 'prefix' must be between 0 and 32, got {prefix}")
    address = ipaddress.IPv4Address(ctx.random.getrandbits(32))
    return str(ipaddress.ip_network(f"{address}/{prefix}", strict=False))


@generators.register(
    "bytea", "Random bytes",
    parameters=[ParameterInfo("size", "int", "Number of bytes", default=16, min=0)],
)
def bytea(ctx, params):
    size = get_int(params, "size", 16)
    if size < 0:
        raise InvalidParamError(f"parameter 'size' must be non-negative, got {size}")
    return bytes(ctx.random.getrandbits(8) for _ in range(size))


@generators.register("money", "Currency amount", example="$1,234.56")
def money(ctx, params):
    low, high = int_range(params, 0, 100000)
    cents = ctx.random.randint(low * 100, high * 100)
    return f"${cents // 100:,}.{cents % 100:02d}"


@generators.register("interval", "Time interval", example="3 days 04:12:55")
def interval(ctx, params):
    days = ctx.random.randint(0, 30)
    seconds = ctx.random.randint(0, 86399)
    return f"{days} days {seconds // 3600:02d}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"


def _next_in_sequence(ctx: GeneratorContext, params: Dict[str, Any]) -> int:
    key = get_str(params, "sequence") or get_str(params, "_column") or "serial"
    start = get_int(params, "start", 1)
    current = ctx.counters.get(key)
    value = start + ctx.sequence_offset if current is None else current + 1
    ctx.counters[key] = value
    return value


@generators.register(
    "serial", "Increasing integer sequence", example="1",
    parameters=[
        ParameterInfo("start", "int", "First value", default=1),
        ParameterInfo("sequence", "string", "Counter name (defaults to the column name)"),
    ],
)
def serial(ctx, params):
    return _next_in_sequence(ctx, params)


generators.add("bigserial", serial, "Increasing big integer sequence", example="1")


# Geometric

@generators.register("point", "Geometric point", example="(12.5,-3.25)")
def point(ctx, params):
    return _format_point(_point(ctx))


@generators.register("line", "Infinite line {A,B,C}", example="{1.5,-2.0,3.25}")
def line(ctx, params):
    a = _coordinate(ctx)
    b = _coordinate(ctx)
    if a == 0 and b == 0:
        b = 1.0
    return f"{{{a},{b},{_coordinate(ctx)}}}"


@generators.register("lseg", "Line segment", example="[(1.0,2.0),(3.0,4.0)]")
def lseg(ctx, params):
    return f"[{_format_points([_point(ctx), _point(ctx)])}]"


@generators.register("box", "Rectangular box", example="((4.0,5.0),(1.0,2.0))")
def box(ctx, params):
    (x1, y1), (x2, y2) = _point(ctx), _point(ctx)
    return f"({_format_points([(max(x1, x2), max(y1, y2)), (min(x1, x2), min(y1, y2))])})"


@generators.register("path", "Open or closed path", example="[(1.0,2.0),(3.0,4.0),(5.0,1.0)]")
def path(ctx, params):
    points = [_point(ctx) for _ in range(ctx.random.randint(2, 5))]
    if ctx.random.random() < 0.5:
        return f"[{_format_points(points)}]"
    return f"({_format_points(points)})"


@generators.register("polygon", "Polygon", example="((0.0,0.0),(4.0,0.0),(2.0,3.0))")
def polygon(ctx, params):
    points = [_point(ctx) for _ in range(ctx.random.randint(3, 6))]
    return f"({_format_points(points)})"


@generators.register("circle", "Circle <(x,y),r>", example="<(1.0,2.0),5.5>")
def circle(ctx, params):
    radius = round(ctx.random.uniform(0.5, 50.0), 2)
    return f"<{_format_point(_point(ctx))},{radius}>"


# Ranges

def _int_bounds(ctx: GeneratorContext, high: int) -> Tuple[int, int]:
    low = ctx.random.randint(0, high)
    return low, ctx.random.randint(low + 1, high + 1)


@generators.register("int4range", "Integer range", example="[10,42)")
def int4range(ctx, params):
    low, high = _int_bounds(ctx, 1000)
    return f"[{low},{high})"


@generators.register("int8range", "Big integer range", example="[1000000,5000000)")
def int8range(ctx, params):
    low, high = _int_bounds(ctx, 10_000_000_000)
    return f"[{low},{high})"


@generators.register("numrange", "Numeric range", example="[1.50,20.75)")
def numrange(ctx, params):
    low = round(ctx.random.uniform(0, 1000), 2)
    high = round(ctx.random.uniform(low + 0.01, low + 1000), 2)
    return f"[{low:.2f},{high:.2f})"


def _datetime_bounds(ctx: GeneratorContext) -> Tuple[datetime, datetime]:
    start = ctx.now - timedelta(seconds=ctx.random.randint(0, 365 * 86400))
    return start, start + timedelta(seconds=ctx.random.randint(60, 30 * 86400))


@generators.register("tsrange", "Timestamp range", example='["2024-01-01 00:00:00","2024-01-02 00:00:00")')
def tsrange(ctx, params):
    start, end = _datetime_bounds(ctx)
    return f'["{start:%Y-%m-%d %H:%M:%S}","{end:%Y-%m-%d %H:%M:%S}")'


@generators.register("tstzrange", "Timestamp with time zone range")
def tstzrange(ctx, params):
    start, end = _datetime_bounds(ctx)
    return f'["{start:%Y-%m-%d %H:%M:%S}+00","{end:%Y-%m-%d %H:%M:%S}+00")'


@generators.register("daterange", "Date range", example="[2024-01-01,2024-02-01)")
def daterange(ctx, params):
    start, end = _datetime_bounds(ctx)
    if end.date() <= start.date():
        end = start + timedelta(days=1)
    return f"[{start:%Y-%m-%d},{end:%Y-%m-%d})"


# Full text

@generators.register("tsvector", "Text search document", example="'lorem':1 'ipsum':2")
def tsvector(ctx, params):
    words = ctx.faker.words(nb=ctx.random.randint(2, 6))
    return " ".join(f"'{w.lower()}':{i}" for i, w in enumerate(words, 1))


@generators.register("tsquery", "Text search query", example="lorem & ipsum")
def tsquery(ctx, params):
    words = ctx.faker.words(nb=ctx.random.randint(1, 3))
    operator = ctx.random.choice([" & ", " | "])
    return operator.join(w.lower() for w in words)


@generators.register("hstore", "Key/value store", example='"color"=>"red", "size"=>"10"')
def hstore(ctx, params):
    pairs = {ctx.faker.word(): ctx.faker.word() for _ in range(ctx.random.randint(1, 4))}
    return ", ".join(f'"{key}"=>"{value}"' for key, value in pairs.items())


@generators.register("xml", "Small XML document", example="<record><name>Ann</name></record>")
def xml(ctx, params):
    return (
        f"<record><id>{ctx.random.randint(1, 10000)}</id>"
        f"<name>{ctx.faker.first_name()}</name>"
        f"<email>{ctx.faker.email()}</email></record>"
    )


@generators.register(
    "array", "List of values produced by another base generator",
    parameters=[
        ParameterInfo("element_type", "string", "Base generator for elements", default="word"),
        ParameterInfo("min_size", "int", "Minimum elements", default=1, min=0),
        ParameterInfo("max_size", "int", "Maximum elements", default=5, min=0),
    ],
)
def array(ctx, params):
    element = get_str(params, "element_type", "word")
    low, high = int_range(params, 1, 5, "min_size", "max_size")
    if low < 0:
        raise InvalidParamError(f"parameter 'min_size' must be non-negative, got {low}")
    return [ctx.engine.generate("base", element, {}) for _ in range(ctx.random.randint(low, high))]


@generators.register(
    "bit", "Bit string", example="10110010",
    parameters=[ParameterInfo("length", "int", "Number of bits", default=8, min=1)],
)
def bit(ctx, params):
    length = get_int(params, "length", 8)
    if length < 1:
        raise InvalidParamError(f"parameter 'length' must be positive, got {length}")
    return "".join(ctx.random.choice("01") for _ in range(length))
