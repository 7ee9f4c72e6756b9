"""Aviation generators."""

import json
import string
from datetime import timedelta

from mockcraft.generators.params import get_str
from mockcraft.generators.registry import GeneratorSet, ParameterInfo

generators = GeneratorSet("aviation")

AIRLINES = {
    "AA": "American Airlines",
    "UA": "United Airlines",
    "DL": "Delta Air Lines",
    "BA": "British Airways",
    "LH": "Lufthansa",
    "AF": "Air France",
    "KL": "KLM Royal Dutch Airlines",
    "SQ": "Singapore Airlines",
    "EK": "Emirates",
    "QF": "Qantas",
}

AIRPORTS = {
    "JFK": "John F. Kennedy International Airport",
    "LAX": "Los Angeles International Airport",
    "ORD": "O'Hare International Airport",
    "ATL": "Hartsfield-Jackson Atlanta International Airport",
    "LHR": "London Heathrow Airport",
    "CDG": "Paris Charles de Gaulle Airport",
    "FRA": "Frankfurt Airport",
    "AMS": "Amsterdam Airport Schiphol",
    "SIN": "Singapore Changi Airport",
    "DXB": "Dubai International Airport",
    "HKG": "Hong Kong International Airport",
    "NRT": "Narita International Airport",
    "SYD": "Sydney Kingsford Smith Airport",
    "MEL": "Melbourne Airport",
    "SFO": "San Francisco International Airport",
    "DFW": "Dallas/Fort Worth International Airport",
    "DEN": "Denver International Airport",
    "SEA": "Seattle-Tacoma International Airport",
    "MIA": "Miami International Airport",
    "BOS": "Logan International Airport",
}

AIRCRAFT_TYPES = [
    "Boeing 737", "Boeing 747", "Boeing 777", "Boeing 787",
    "Airbus A320", "Airbus A330", "Airbus A350", "Airbus A380",
    "Embraer E190", "Bombardier CRJ900",
]

FLIGHT_STATUSES = [
    "On Time", "Delayed", "Boarding", "Departed", "Arrived", "Cancelled", "Diverted", "Gate Changed",
]

REGISTRATION_PREFIXES = ["N", "G-", "D-", "F-", "PH-", "9V-", "A6-", "VH-"]

BAGGAGE_CAROUSELS = "ABCDE"

STRUCTURED_FORMAT = [ParameterInfo("format", "string", "Output shape", default="json",
                                   options=["json", "dict"])]


def _structured(value, params):
    if get_str(params, "format", "json", options=["json", "dict"]) == "dict":
        return value
    return json.dumps(value)


def _flight_number(ctx):
    return f"{ctx.random.choice(list(AIRLINES))}{ctx.random.randint(1000, 9999)}"


def _gate(ctx):
    return f"{ctx.random.choice(string.ascii_uppercase[:6])}{ctx.random.randint(1, 99)}"


def _baggage_claim(ctx):
    return f"{ctx.random.choice(BAGGAGE_CAROUSELS)}{ctx.random.randint(1, 12)}"


def _schedule(ctx):
    departure = ctx.now.replace(second=0, microsecond=0) + timedelta(
        days=ctx.random.randint(0, 30), minutes=ctx.random.randint(0, 24 * 60 - 1)
    )
    arrival = departure + timedelta(minutes=ctx.random.randint(45, 16 * 60))
    return {
        "departure_date": departure.date().isoformat(),
        "departure_time": departure.strftime("%H:%M"),
        "arrival_date": arrival.date().isoformat(),
        "arrival_time": arrival.strftime("%H:%M"),
        "duration_minutes": int((arrival - departure).total_seconds() // 60),
    }


@generators.register("airline", "Airline name", example="Lufthansa")
def airline(ctx, params):
    return AIRLINES[ctx.random.choice(list(AIRLINES))]


@generators.register("airport", "Airport name", example="Frankfurt Airport")
def airport(ctx, params):
    return AIRPORTS[ctx.random.choice(list(AIRPORTS))]


@generators.register("airport_code", "IATA airport code", example="FRA")
def airport_code(ctx, params):
    return ctx.random.choice(list(AIRPORTS))


@generators.register("aircraft_type", "Aircraft model", example="Airbus A350")
def aircraft_type(ctx, params):
    return ctx.random.choice(AIRCRAFT_TYPES)


@generators.register("aircraft_registration", "Aircraft tail number", example="N482QX")
def aircraft_registration(ctx, params):
    prefix = ctx.random.choice(REGISTRATION_PREFIXES)
    if prefix == "N":
        digits = "".join(ctx.random.choice(string.digits) for _ in range(3))
        letters = "".join(ctx.random.choice(string.ascii_uppercase) for _ in range(2))
        return f"N{ctx.random.randint(1, 9)}{digits}{letters}"
    # Marks are six characters including the dash
    size = 6 - len(prefix)
    return prefix + "".join(ctx.random.choice(string.ascii_uppercase) for _ in range(size))


@generators.register("flight_number", "Airline code followed by four digits", example="BA2491")
def flight_number(ctx, params):
    return _flight_number(ctx)


@generators.register("flight_status", "Operational flight status", example="Boarding")
def flight_status(ctx, params):
    return ctx.random.choice(FLIGHT_STATUSES)


@generators.register("gate_number", "Terminal gate", example="C14")
def gate_number(ctx, params):
    return _gate(ctx)


@generators.register("seat_number", "Cabin seat", example="23F")
def seat_number(ctx, params):
    return f"{ctx.random.randint(1, 40)}{ctx.random.choice('ABCDEF')}"


@generators.register("baggage_claim", "Baggage carousel", example="B7")
def baggage_claim(ctx, params):
    return _baggage_claim(ctx)


@generators.register("flight_schedule", "Departure and arrival times", parameters=STRUCTURED_FORMAT)
def flight_schedule(ctx, params):
    return _structured(_schedule(ctx), params)


@generators.register("flight_info", "Complete flight summary", parameters=STRUCTURED_FORMAT)
def flight_info(ctx, params):
    origin, destination = ctx.random.sample(list(AIRPORTS), 2)
    info = {
        "flight_number": _flight_number(ctx),
        "aircraft_type": ctx.random.choice(AIRCRAFT_TYPES),
        "origin": origin,
        "destination": destination,
        "gate": _gate(ctx),
        "status": ctx.random.choice(FLIGHT_STATUSES),
        "baggage_claim": _baggage_claim(ctx),
        "schedule": _schedule(ctx),
    }
    return _structured(info, params)
