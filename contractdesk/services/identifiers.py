# contractdesk/services/identifiers.py
"""Human-readable document identifiers: QT00001, PRJ00001, INV00001."""
import re

QUOTATION = "quotation"
PROJECT = "project"
INVOICE = "invoice"

PREFIXES = {
    QUOTATION: "QT",
    PROJECT: "PRJ",
    INVOICE: "INV",
}

COUNTER_NAMES = {
    QUOTATION: "quotation_counter",
    PROJECT: "project_counter",
    INVOICE: "invoice_counter",
}

PAD_WIDTH = 5

_PARSE = re.compile(r"^(QT|PRJ|INV)(\d{%d,})$" % PAD_WIDTH)
_KIND_BY_PREFIX = {prefix: kind for kind, prefix in PREFIXES.items()}


def build(kind: str, value: int) -> str:
    """Format ``value`` as the canonical identifier for ``kind``.

    Deterministic and side-effect free. Values past 99999 simply widen.
    """
    if kind not in PREFIXES:
        raise ValueError(f"Unknown document kind: {kind!r}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Sequence value must be an int, got {value!r}")
    if value <= 0:
        raise ValueError(f"Sequence value must be positive, got {value}")
    return f"{PREFIXES[kind]}{value:0{PAD_WIDTH}d}"


def parse(identifier: str) -> tuple[str, int]:
    """Inverse of build(): ``"PRJ00012"`` -> ``("project", 12)``."""
    m = _PARSE.match(identifier or "")
    if not m:
        raise ValueError(f"Not a document identifier: {identifier!r}")
    value = int(m.group(2))
    # reject non-canonical padding such as "QT000001"
    if build(_KIND_BY_PREFIX[m.group(1)], value) != identifier:
        raise ValueError(f"Not a document identifier: {identifier!r}")
    return _KIND_BY_PREFIX[m.group(1)], value


def kind_of(identifier: str) -> str | None:
    try:
        return parse(identifier)[0]
    except ValueError:
        return None


def next_identifier(sequence, kind: str) -> str:
    """Allocate the next value for ``kind`` and format it."""
    return build(kind, sequence.next(COUNTER_NAMES[kind]))
