"""
Mapping of introspection claims to outbound headers.

Values are rendered the way a JSON-native host writes them into a header:
booleans lowercase, numbers in JavaScript Number form (`1.0` -> `1`,
`1e21` -> `1e+21`, `1e-7` -> `1e-7`), null as an empty string, arrays
comma-joined element by element. Header values go out as UTF-8 bytes.
Object values are governed by the nested policy: "reject" raises
NestedClaimError, "flatten" emits one header per leaf named
"<prefix><key>-<subkey>".
"""

import json
import math
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Tuple

from shared.errors import IntrospectionParseError, NestedClaimError

# Integers beyond this lose precision in a double
MAX_SAFE_INTEGER = 2 ** 53

REJECT = "reject"
FLATTEN = "flatten"
NESTED_POLICIES = (REJECT, FLATTEN)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_introspection_response(body: str) -> Dict[str, Any]:
    """Parse a provider body into an ordered claim mapping."""
    try:
        document = json.loads(body, parse_constant=_reject_constant)
    except ValueError as e:
        raise IntrospectionParseError(details={"parse_error": str(e)})

    if not isinstance(document, dict):
        raise IntrospectionParseError(
            details={"parse_error": f"Expected a JSON object, got {type(document).__name__}"}
        )
    return document


def format_number(value: float) -> str:
    """Render a double the way JavaScript's Number#toString does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "-Infinity" if value < 0 else "Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr gives the shortest round-tripping digits, as JavaScript does
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = exponent + k

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{mantissa}e{n - 1:+d}"
    return sign + text


def stringify_claim(value: Any) -> str:
    """Render a scalar or array claim as a header value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if abs(value) < MAX_SAFE_INTEGER:
            return str(value)
        try:
            return format_number(float(value))
        except OverflowError:
            return "-Infinity" if value < 0 else "Infinity"
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ",".join(stringify_claim(item) for item in value)
    if isinstance(value, dict):
        raise NestedClaimError(details={"value_type": "object"})
    raise TypeError(f"Unsupported claim type: {type(value).__name__}")


def claims_to_headers(claims: Mapping[str, Any], prefix: str = "Token-",
                      nested: str = REJECT) -> Dict[str, str]:
    """Build the outbound header set for a claim mapping."""
    if nested not in NESTED_POLICIES:
        raise ValueError(f"Unknown nested claim policy: {nested}")

    headers: Dict[str, str] = {}
    for key, value in claims.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            if nested == REJECT:
                raise NestedClaimError(details={"claim": key})
            headers.update(claims_to_headers(value, prefix=f"{name}-", nested=nested))
            continue
        try:
            headers[name] = stringify_claim(value)
        except NestedClaimError as e:
            e.details["claim"] = key
            raise
    return headers


def encode_headers(headers: Mapping[str, str]) -> List[Tuple[bytes, bytes]]:
    """Encode a header set as raw ASGI pairs: lowercase names, UTF-8 values."""
    return [
        (name.lower().encode("utf-8", "surrogatepass"), value.encode("utf-8", "surrogatepass"))
        for name, value in headers.items()
    ]
