"""Action message codec.

Social actions are embedded in ordinary commit messages. A message carries
free body text, a header line naming the owning extension, and optional
reference sections pointing at other actions:

    Nice write-up!

    --- GitMsg: ext="social"; type="comment"; v="0.1.0"; ext-v="0.1.0" ---

    --- GitMsg-Ref: ext="social"; author="Alice"; email="alice@example.com"; time="2025-01-01T00:00:00Z"; social:ref-type="original"; ref="https://github.com/alice/blog#commit:0123456789ab"; v="0.1.0"; ext-v="0.1.0" ---
    > Original post text

Commits that do not follow this layout decode to None and are treated as
plain posts by callers.
"""

import re
from dataclasses import dataclass, field

SOCIAL_EXTENSION = "social"
PROTOCOL_VERSION = "0.1.0"

# Quote marker used in reference metadata for excerpts of the referenced body
EXCERPT_MARKER = ">"

REF_TYPE_FIELD = "social:ref-type"

HEADER_RE = re.compile(r"^--- GitMsg: (.*) ---$")
REF_HEADER_RE = re.compile(r"^--- GitMsg-Ref: (.*) ---$")
FIELD_RE = re.compile(r'([a-zA-Z_][a-zA-Z0-9_:-]*)="([^"]*)"')
FIELD_KEY_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_:-]*$")

HEADER_CORE_FIELDS = frozenset({"ext", "v", "ext-v"})
REF_CORE_FIELDS = frozenset({"ext", "ref", "v", "ext-v", "author", "email", "time"})


class ActionCodecError(ValueError):
    """Raised when a message cannot be encoded."""


@dataclass(frozen=True)
class ActionHeader:
    ext: str  # Extension namespace owning the message, e.g. "social"
    version: str = PROTOCOL_VERSION
    ext_version: str = PROTOCOL_VERSION
    fields: dict[str, str] = field(default_factory=dict)  # Extension fields, e.g. {"type": "comment"}


@dataclass(frozen=True)
class ActionReference:
    ext: str
    ref: str  # Address of the referenced action
    author: str
    email: str
    time: str  # ISO 8601
    version: str = PROTOCOL_VERSION
    ext_version: str = PROTOCOL_VERSION
    fields: dict[str, str] = field(default_factory=dict)
    metadata: str | None = None  # Free text; ">" lines quote the referenced body


@dataclass(frozen=True)
class ActionMessage:
    content: str
    header: ActionHeader
    references: tuple[ActionReference, ...] = ()


def _parse_fields(text: str) -> dict[str, str]:
    return {key: value for key, value in FIELD_RE.findall(text)}


def _parse_header(line: str) -> ActionHeader | None:
    match = HEADER_RE.match(line)
    if not match:
        return None

    raw = _parse_fields(match.group(1))
    ext, version, ext_version = raw.get("ext"), raw.get("v"), raw.get("ext-v")
    if not ext or not version or not ext_version:
        return None

    return ActionHeader(
        ext=ext,
        version=version,
        ext_version=ext_version,
        fields={k: v for k, v in raw.items() if k not in HEADER_CORE_FIELDS},
    )


def _parse_reference(lines: list[str]) -> ActionReference | None:
    match = REF_HEADER_RE.match(lines[0])
    if not match:
        return None

    raw = _parse_fields(match.group(1))
    if any(not raw.get(key) for key in REF_CORE_FIELDS):
        return None

    metadata = "\n".join(lines[1:]).strip()
    return ActionReference(
        ext=raw["ext"],
        ref=raw["ref"],
        author=raw["author"],
        email=raw["email"],
        time=raw["time"],
        version=raw["v"],
        ext_version=raw["ext-v"],
        fields={k: v for k, v in raw.items() if k not in REF_CORE_FIELDS},
        metadata=metadata or None,
    )


def decode(text: str | None) -> ActionMessage | None:
    """Decode an action message from commit text.

    Returns None for text without a valid header, with an empty body, or
    with a malformed reference section. Never raises.
    """
    if not isinstance(text, str):
        return None

    lines = [line.rstrip("\r") for line in text.split("\n")]

    # The header must follow at least one line of body text
    header_index = next(
        (i for i in range(1, len(lines)) if HEADER_RE.match(lines[i])),
        None,
    )
    if header_index is None:
        return None

    content = "\n".join(lines[:header_index]).strip()
    if not content:
        return None

    header = _parse_header(lines[header_index])
    if header is None:
        return None

    sections: list[list[str]] = []
    for line in lines[header_index + 1:]:
        if REF_HEADER_RE.match(line):
            sections.append([line])
        elif sections:
            sections[-1].append(line)

    references = []
    for section in sections:
        reference = _parse_reference(section)
        if reference is None:
            return None
        references.append(reference)

    return ActionMessage(content=content, header=header, references=tuple(references))


def _check_fields(fields: dict[str, str], reserved: frozenset[str]) -> None:
    for key, value in fields.items():
        if not FIELD_KEY_RE.match(key):
            raise ActionCodecError(f"Invalid field name: {key!r}")
        if key in reserved:
            raise ActionCodecError(f"Field name is reserved: {key!r}")
        _check_value(key, value)


def _check_value(key: str, value: str) -> None:
    if not value:
        raise ActionCodecError(f"Field {key!r} must not be empty")
    if '"' in value or "\n" in value or "\r" in value:
        raise ActionCodecError(f"Field {key!r} contains a quote or line break")


def _is_protocol_line(line: str) -> bool:
    return bool(HEADER_RE.match(line) or REF_HEADER_RE.match(line))


def format_header(header: ActionHeader) -> str:
    """Render a header line: ext first, extension fields, versions last."""
    _check_value("ext", header.ext)
    _check_value("v", header.version)
    _check_value("ext-v", header.ext_version)
    _check_fields(header.fields, HEADER_CORE_FIELDS)

    parts = [f'ext="{header.ext}"']
    parts.extend(f'{key}="{value}"' for key, value in header.fields.items())
    parts.append(f'v="{header.version}"')
    parts.append(f'ext-v="{header.ext_version}"')
    return f"--- GitMsg: {'; '.join(parts)} ---"


def format_reference(reference: ActionReference) -> str:
    """Render a reference section: header line followed by metadata."""
    for key, value in (
        ("ext", reference.ext),
        ("author", reference.author),
        ("email", reference.email),
        ("time", reference.time),
        ("ref", reference.ref),
        ("v", reference.version),
        ("ext-v", reference.ext_version),
    ):
        _check_value(key, value)
    _check_fields(reference.fields, REF_CORE_FIELDS)

    parts = [
        f'ext="{reference.ext}"',
        f'author="{reference.author}"',
        f'email="{reference.email}"',
        f'time="{reference.time}"',
    ]
    parts.extend(f'{key}="{value}"' for key, value in reference.fields.items())
    parts.append(f'ref="{reference.ref}"')
    parts.append(f'v="{reference.version}"')
    parts.append(f'ext-v="{reference.ext_version}"')
    line = f"--- GitMsg-Ref: {'; '.join(parts)} ---"

    if reference.metadata is None:
        return line

    metadata = reference.metadata
    if not metadata or metadata != metadata.strip() or "\r" in metadata:
        raise ActionCodecError("Reference metadata must be non-empty, trimmed and free of carriage returns")
    if any(_is_protocol_line(m) for m in metadata.split("\n")):
        raise ActionCodecError("Reference metadata contains a protocol header line")
    return f"{line}\n{metadata}"


def encode(message: ActionMessage) -> str:
    """Encode an action message into commit text.

    Raises ActionCodecError for messages that would not decode back to
    themselves.
    """
    content = message.content
    if not content or content != content.strip() or "\r" in content:
        raise ActionCodecError("Message body must be non-empty, trimmed and free of carriage returns")
    if any(_is_protocol_line(line) for line in content.split("\n")):
        raise ActionCodecError("Message body contains a protocol header line")

    parts = [content, "", format_header(message.header)]
    for reference in message.references:
        parts.append("")
        parts.append(format_reference(reference))
    return "\n".join(parts)


def extract_clean_content(text: str) -> str:
    """Strip header and reference sections, leaving only the body text."""
    message = decode(text)
    if message is not None:
        return message.content

    lines = text.split("\n")
    kept = []
    in_reference = False
    for line in lines:
        if REF_HEADER_RE.match(line):
            in_reference = True
            continue
        if HEADER_RE.match(line) or in_reference:
            continue
        kept.append(line)
    return "\n".join(kept).strip()


def get_post_type(message: ActionMessage | None) -> str:
    """Social post type of a message: post, comment, repost or quote."""
    if message is None or message.header.ext != SOCIAL_EXTENSION:
        return "post"
    social_type = message.header.fields.get("type")
    if social_type in ("comment", "repost", "quote"):
        return social_type
    return "post"


def find_reference(message: ActionMessage | None, ref_type: str) -> ActionReference | None:
    """First reference tagged with the given social:ref-type."""
    if message is None:
        return None
    return next((r for r in message.references if r.fields.get(REF_TYPE_FIELD) == ref_type), None)


def first_excerpt(reference: ActionReference | None) -> str | None:
    """First quoted line of a reference's metadata, marker stripped."""
    if reference is None or not reference.metadata:
        return None
    for line in reference.metadata.split("\n"):
        if line.startswith(EXCERPT_MARKER):
            return line[len(EXCERPT_MARKER):].strip()
    return None
