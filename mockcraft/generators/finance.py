"""Banking and transaction generators."""

import json
import string
from datetime import timedelta

from mockcraft.core.errors import InvalidParamError
from mockcraft.generators.params import float_range, get_int, get_str, round_half_up
from mockcraft.generators.registry import GeneratorSet, ParameterInfo

generators = GeneratorSet("finance")

BANK_NAMES = [
    "First National Bank", "Citizens Trust", "Harbor Savings Bank", "Summit Federal Credit Union",
    "Pioneer Commercial Bank", "Lakeside Community Bank", "Granite State Bank",
    "Meridian Financial", "Riverbend Savings & Loan", "Northstar Capital Bank",
]

TRANSACTION_TYPES = ["deposit", "withdrawal", "transfer", "payment", "refund", "fee", "interest"]

AMOUNT_RANGE = [
    ParameterInfo("min", "float", "Smallest amount", default=1.0),
    ParameterInfo("max", "float", "Largest amount", default=5000.0),
    ParameterInfo("precision", "int", "Decimal places", default=2),
]


def _amount(ctx, params):
    low, high = float_range(params, 1.0, 5000.0)
    value = round_half_up(ctx.random.uniform(low, high), get_int(params, "precision", 2))
    return min(max(value, low), high)


def _transaction_id(ctx):
    alphabet = string.ascii_uppercase + string.digits
    return "TXN" + "".join(ctx.random.choice(alphabet) for _ in range(12))


@generators.register("bank_name", "Bank name", example="Harbor Savings Bank")
def bank_name(ctx, params):
    return ctx.random.choice(BANK_NAMES)


@generators.register(
    "account_number", "Numeric bank account number", example="0048213377",
    parameters=[ParameterInfo("length", "int", "Number of digits", default=10, min=4, max=20)],
)
def account_number(ctx, params):
    length = get_int(params, "length", 10)
    if not 4 <= length <= 20:
        raise InvalidParamError(f"parameter 'length' must be between 4 and 20, got {length}")
    return "".join(ctx.random.choice(string.digits) for _ in range(length))


@generators.register("routing_number", "ABA routing transit number", example="021000021")
def routing_number(ctx, params):
    return ctx.faker.aba()


@generators.register("iban", "International bank account number", example="GB82WEST12345698765432")
def iban(ctx, params):
    return ctx.faker.iban()


@generators.register(
    "swift_code", "SWIFT/BIC code", example="DEUTDEFF500",
    parameters=[ParameterInfo("length", "int", "Code length", default=8, options=[8, 11])],
)
def swift_code(ctx, params):
    length = get_int(params, "length", 8)
    if length not in (8, 11):
        raise InvalidParamError(f"parameter 'length' must be 8 or 11, got {length}")
    return ctx.faker.swift(length=length)


@generators.register("transaction_id", "Transaction reference", example="TXN4F9K2LQ8ZP01")
def transaction_id(ctx, params):
    return _transaction_id(ctx)


@generators.register("transaction_type", "Kind of transaction", example="transfer")
def transaction_type(ctx, params):
    return ctx.random.choice(TRANSACTION_TYPES)


@generators.register("transaction_amount", "Transaction amount", example="249.99", parameters=AMOUNT_RANGE)
def transaction_amount(ctx, params):
    return _amount(ctx, params)


@generators.register(
    "transaction", "Complete transaction record",
    parameters=AMOUNT_RANGE + [ParameterInfo("format", "string", "Output shape", default="json",
                                             options=["json", "dict"])],
)
def transaction(ctx, params):
    occurred = ctx.now - timedelta(seconds=ctx.random.randint(0, 365 * 86400))
    record = {
        "transaction_id": _transaction_id(ctx),
        "type": ctx.random.choice(TRANSACTION_TYPES),
        "amount": _amount(ctx, params),
        "currency": ctx.faker.currency_code(),
        "account_number": "".join(ctx.random.choice(string.digits) for _ in range(10)),
        "bank": ctx.random.choice(BANK_NAMES),
        "timestamp": occurred.isoformat(),
    }
    if get_str(params, "format", "json", options=["json", "dict"]) == "dict":
        return record
    return json.dumps(record)
