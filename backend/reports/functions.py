"""Function library available inside report templates.

The general-purpose helpers follow sprig's names and argument order (the
value being operated on comes last), so they are exposed as template
globals and called function-style::

    {{ indent(4, include("host", host)) }}
    {{ default("unknown", host.rack) }}
    {{ join(",", keys(zone)) }}

Jinja's own filters stay untouched and can still be used with pipes. The
CIDR helpers take a single argument and are also registered as filters, so
``{{ iface.cidr | netmask }}`` and ``{{ netmask(iface.cidr) }}`` are
equivalent.
"""

import base64
import ipaddress
import json
from datetime import datetime, timezone
from typing import Any, Callable

from utils.errors import CIDRError


# ---------------------------------------------------------------------------
# CIDR helpers
# ---------------------------------------------------------------------------


def _parse_cidr(cidr: str) -> ipaddress.IPv4Interface | ipaddress.IPv6Interface:
    if not isinstance(cidr, str) or "/" not in cidr:
        raise CIDRError(f"failed to parse CIDR {cidr!r}: missing prefix length")
    try:
        return ipaddress.ip_interface(cidr.strip())
    except ValueError as exc:
        raise CIDRError(f"failed to parse CIDR {cidr!r}: {exc}") from exc


def cidr_address(cidr: str) -> str:
    """Return the address part of ``cidr`` (``10.1.0.7/16`` -> ``10.1.0.7``)."""
    return str(_parse_cidr(cidr).ip)


def cidr_netmask(cidr: str) -> str:
    """Return the network mask of ``cidr`` in dotted form (``/24`` -> ``255.255.255.0``)."""
    return str(_parse_cidr(cidr).netmask)


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def trim_all(cutset: str, s: Any) -> str:
    return _text(s).strip(cutset)


def trim_prefix(prefix: str, s: Any) -> str:
    s = _text(s)
    return s[len(prefix):] if prefix and s.startswith(prefix) else s


def trim_suffix(suffix: str, s: Any) -> str:
    s = _text(s)
    return s[: -len(suffix)] if suffix and s.endswith(suffix) else s


def substr(start: int, end: int, s: Any) -> str:
    s = _text(s)
    if start < 0:
        return s[:end]
    if end < 0 or end > len(s):
        return s[start:]
    return s[start:end]


def trunc(length: int, s: Any) -> str:
    s = _text(s)
    return s[length:] if length < 0 else s[:length]


def abbrev(width: int, s: Any) -> str:
    s = _text(s)
    if width < 4 or len(s) <= width:
        return s
    return s[: width - 3] + "..."


def indent(spaces: int, s: Any) -> str:
    pad = " " * spaces
    return pad + _text(s).replace("\n", "\n" + pad)


def nindent(spaces: int, s: Any) -> str:
    return "\n" + indent(spaces, s)


def quote(*values: Any) -> str:
    return " ".join(json.dumps(_text(v)) for v in values if v is not None)


def squote(*values: Any) -> str:
    return " ".join(f"'{_text(v)}'" for v in values if v is not None)


def cat(*values: Any) -> str:
    return " ".join(_text(v) for v in values if v is not None)


def plural(one: str, many: str, count: int) -> str:
    return one if count == 1 else many


# ---------------------------------------------------------------------------
# Defaults and flow
# ---------------------------------------------------------------------------


def empty(value: Any) -> bool:
    """Sprig truthiness: None, zero, empty strings and empty collections are empty."""
    if value is None:
        return True
    if isinstance(value, bool):
        return not value
    if isinstance(value, (int, float)):
        return value == 0
    try:
        return len(value) == 0
    except TypeError:
        return False


def default(fallback: Any, value: Any = None) -> Any:
    return fallback if empty(value) else value


def coalesce(*values: Any) -> Any:
    for value in values:
        if not empty(value):
            return value
    return None


def ternary(if_true: Any, if_false: Any, condition: Any) -> Any:
    return if_true if condition else if_false


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------


def make_list(*items: Any) -> list:
    return list(items)


def first(items: Any) -> Any:
    items = list(items or [])
    return items[0] if items else None


def last(items: Any) -> Any:
    items = list(items or [])
    return items[-1] if items else None


def rest(items: Any) -> list:
    return list(items or [])[1:]


def initial(items: Any) -> list:
    return list(items or [])[:-1]


def uniq(items: Any) -> list:
    seen: list = []
    for item in items or []:
        if item not in seen:
            seen.append(item)
    return seen


def compact(items: Any) -> list:
    return [item for item in items or [] if not empty(item)]


def has(needle: Any, items: Any) -> bool:
    return needle in list(items or [])


def without(items: Any, *drop: Any) -> list:
    return [item for item in items or [] if item not in drop]


def sort_alpha(items: Any) -> list:
    return sorted(_text(item) for item in items or [])


def append(items: Any, value: Any) -> list:
    return [*(items or []), value]


def prepend(items: Any, value: Any) -> list:
    return [value, *(items or [])]


def concat(*lists: Any) -> list:
    return [item for items in lists for item in items or []]


def split_list(sep: str, s: Any) -> list[str]:
    return _text(s).split(sep)


def join(sep: str, items: Any) -> str:
    if isinstance(items, str):
        return items
    return sep.join(_text(item) for item in items or [])


def pluck(key: str, *dicts: dict) -> list:
    return [d[key] for d in dicts if key in d]


# ---------------------------------------------------------------------------
# Dicts
# ---------------------------------------------------------------------------


def make_dict(*pairs: Any, **kwargs: Any) -> dict:
    """``dict("a", 1, "b", 2)`` sprig style, or ``dict(a=1)`` Jinja style."""
    result = {_text(k): v for k, v in zip(pairs[::2], pairs[1::2])}
    if len(pairs) % 2:
        result[_text(pairs[-1])] = ""
    result.update(kwargs)
    return result


def get(d: dict, key: str) -> Any:
    return (d or {}).get(key, "")


def has_key(d: dict, key: str) -> bool:
    return key in (d or {})


def keys(*dicts: dict) -> list:
    return [k for d in dicts for k in (d or {})]


def values(d: dict) -> list:
    return list((d or {}).values())


def pick(d: dict, *names: str) -> dict:
    return {k: v for k, v in (d or {}).items() if k in names}


def omit(d: dict, *names: str) -> dict:
    return {k: v for k, v in (d or {}).items() if k not in names}


def merge(*dicts: dict) -> dict:
    """Merge left to right; keys already present win, as in sprig."""
    result: dict = {}
    for d in dicts:
        for k, v in (d or {}).items():
            result.setdefault(k, v)
    return result


# ---------------------------------------------------------------------------
# Encoding, math and dates
# ---------------------------------------------------------------------------


def to_json(value: Any) -> str:
    return json.dumps(value, default=str, separators=(",", ":"))


def to_pretty_json(value: Any) -> str:
    return json.dumps(value, default=str, indent=2)


def from_json(s: str) -> Any:
    return json.loads(s)


def b64enc(s: Any) -> str:
    return base64.b64encode(_text(s).encode()).decode()


def b64dec(s: str) -> str:
    return base64.b64decode(s).decode()


def now() -> datetime:
    return datetime.now(timezone.utc)


def date(fmt: str, value: Any) -> str:
    if isinstance(value, (int, float)):
        value = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime(fmt)


FUNCTIONS: dict[str, Callable[..., Any]] = {
    # strings
    "upper": lambda s: _text(s).upper(),
    "lower": lambda s: _text(s).lower(),
    "title": lambda s: _text(s).title(),
    "trim": lambda s: _text(s).strip(),
    "trimAll": trim_all,
    "trimPrefix": trim_prefix,
    "trimSuffix": trim_suffix,
    "hasPrefix": lambda prefix, s: _text(s).startswith(prefix),
    "hasSuffix": lambda suffix, s: _text(s).endswith(suffix),
    "contains": lambda substr_, s: substr_ in _text(s),
    "replace": lambda old, new, s: _text(s).replace(old, new),
    "repeat": lambda count, s: _text(s) * count,
    "substr": substr,
    "trunc": trunc,
    "abbrev": abbrev,
    "nospace": lambda s: "".join(_text(s).split()),
    "indent": indent,
    "nindent": nindent,
    "quote": quote,
    "squote": squote,
    "cat": cat,
    "plural": plural,
    "splitList": split_list,
    "join": join,
    # defaults and flow
    "default": default,
    "empty": empty,
    "coalesce": coalesce,
    "ternary": ternary,
    # lists
    "list": make_list,
    "first": first,
    "last": last,
    "rest": rest,
    "initial": initial,
    "uniq": uniq,
    "compact": compact,
    "has": has,
    "without": without,
    "sortAlpha": sort_alpha,
    "append": append,
    "prepend": prepend,
    "concat": concat,
    "pluck": pluck,
    # dicts
    "dict": make_dict,
    "get": get,
    "hasKey": has_key,
    "keys": keys,
    "values": values,
    "pick": pick,
    "omit": omit,
    "merge": merge,
    # encoding
    "toJson": to_json,
    "toPrettyJson": to_pretty_json,
    "fromJson": from_json,
    "b64enc": b64enc,
    "b64dec": b64dec,
    # math
    "add": lambda *nums: sum(nums),
    "sub": lambda a, b: a - b,
    "mul": lambda a, b: a * b,
    "div": lambda a, b: a // b,
    "mod": lambda a, b: a % b,
    "max": lambda *nums: max(nums),
    "min": lambda *nums: min(nums),
    # dates
    "now": now,
    "date": date,
    # network
    "address": cidr_address,
    "netmask": cidr_netmask,
}

FILTERS: dict[str, Callable[..., Any]] = {
    "address": cidr_address,
    "netmask": cidr_netmask,
}
