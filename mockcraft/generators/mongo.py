"""Generators producing native BSON values for document backends."""

import hashlib
import uuid
from decimal import Decimal

from bson import Binary, Decimal128, MaxKey, MinKey, ObjectId, Regex, Timestamp

from mockcraft.core.errors import InvalidParamError
from mockcraft.generators.params import float_range, get_int, get_str
from mockcraft.generators.registry import GeneratorSet, ParameterInfo

generators = GeneratorSet("base")

BINARY_SUBTYPES = {
    "generic": 0x00,
    "uuid": 0x04,
    "md5": 0x05,
    "user_defined": 0x80,
}

REGEX_PATTERNS = [
    r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$",
    r"^\d{3}-\d{2}-\d{4}$",
    r"^\+?1?\d{10}$",
    r"^[A-Z]{2}\d{6}$",
    r"^[a-zA-Z][a-zA-Z0-9_]{2,15}$",
]

REGEX_OPTIONS = ["i", "m", "s", "x", ""]


def _random_bytes(ctx, size):
    return bytes(ctx.random.getrandbits(8) for _ in range(size))


@generators.register("mongo_object_id", "BSON ObjectId", example="65f1c2a9e4b0a1d2c3e4f5a6")
def object_id(ctx, params):
    return ObjectId(_random_bytes(ctx, 12))


@generators.register(
    "mongo_decimal128", "BSON Decimal128", example="1234.56",
    parameters=[
        ParameterInfo("min", "float", "Lower bound", default=0.0),
        ParameterInfo("max", "float", "Upper bound", default=1000.0),
        ParameterInfo("precision", "int", "Decimal places", default=2, min=0),
    ],
)
def decimal128(ctx, params):
    low, high = float_range(params, 0.0, 1000.0)
    precision = get_int(params, "precision", 2)
    if precision < 0:
        raise InvalidParamError(f"parameter 'precision' must be non-negative, got {precision}")
    value = Decimal(repr(ctx.random.uniform(low, high))).quantize(Decimal(1).scaleb(-precision))
    return Decimal128(value)


@generators.register(
    "mongo_binary", "BSON binary data",
    parameters=[
        ParameterInfo("subtype", "string", "Binary subtype", default="generic",
                      options=list(BINARY_SUBTYPES)),
        ParameterInfo("size", "int", "Payload size in bytes", default=16, min=0),
    ],
)
def binary(ctx, params):
    subtype = get_str(params, "subtype", "generic", options=list(BINARY_SUBTYPES))
    size = get_int(params, "size", 16)
    if size < 0:
        raise InvalidParamError(f"parameter 'size' must be non-negative, got {size}")
    if subtype == "uuid":
        data = uuid.UUID(int=ctx.random.getrandbits(128), version=4).bytes
    elif subtype == "md5":
        data = hashlib.md5(_random_bytes(ctx, size)).digest()
    else:
        data = _random_bytes(ctx, size)
    return Binary(data, BINARY_SUBTYPES[subtype])


@generators.register("mongo_timestamp", "BSON internal timestamp")
def timestamp(ctx, params):
    return Timestamp(int(ctx.now.timestamp()), ctx.random.randint(1, 1000))


@generators.register("mongo_regex", "BSON regular expression", example="/^\\d{3}-\\d{2}-\\d{4}$/i")
def regex(ctx, params):
    return Regex(ctx.random.choice(REGEX_PATTERNS), ctx.random.choice(REGEX_OPTIONS))


@generators.register("mongo_min_key", "BSON MinKey")
def min_key(ctx, params):
    return MinKey()


@generators.register("mongo_max_key", "BSON MaxKey")
def max_key(ctx, params):
    return MaxKey()
