from __future__ import annotations

import re
from dataclasses import dataclass

_FRONT_MATTER_KEY_RE = re.compile(r"^([A-Za-z0-9_-]+):\s*(.*)$")
_FRONT_MATTER_CHILD_RE = re.compile(r"^\s+([A-Za-z0-9_-]+):\s*(.*)$")


@dataclass(frozen=True)
class DocumentMeta:
    title: str = ""
    author: str = ""
    subject: str = ""


def _strip_yaml_quotes(value: str) -> str:
    text = str(value or "").strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        text = text[1:-1]
    return text.strip()


def split_front_matter(markdown: str) -> tuple[str | None, str]:
    src = str(markdown or "")
    if src.startswith("\ufeff"):
        src = src.lstrip("\ufeff")
    if not src.startswith("---"):
        return None, src
    lines = src.split("\n")
    if lines[0].strip() != "---":
        return None, src
    end_idx = None
    for idx in range(1, len(lines)):
        if lines[idx].strip() in ("---", "..."):
            end_idx = idx
            break
    if end_idx is None:
        return None, src
    front = "\n".join(lines[1:end_idx])
    body = "\n".join(lines[end_idx + 1 :]).lstrip("\n")
    return front, body


def parse_front_matter(front: str) -> dict[str, object]:
    meta: dict[str, object] = {}
    current_key: str | None = None
    for raw in str(front or "").splitlines():
        if not raw.strip() or raw.lstrip().startswith("#"):
            continue
        m = _FRONT_MATTER_KEY_RE.match(raw)
        if m:
            key = m.group(1).strip()
            value = m.group(2).strip()
            if value == "":
                meta[key] = {}
                current_key = key
            else:
                meta[key] = _strip_yaml_quotes(value)
                current_key = None
            continue
        if current_key:
            m = _FRONT_MATTER_CHILD_RE.match(raw)
            if not m:
                continue
            node = meta.get(current_key)
            if not isinstance(node, dict):
                node = {}
                meta[current_key] = node
            node[m.group(1).strip()] = _strip_yaml_quotes(m.group(2))
    return meta


def _meta_str(meta: dict[str, object], *keys: str) -> str:
    for key in keys:
        val = meta.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return ""


def extract_meta(markdown: str) -> tuple[DocumentMeta, str]:
    front, body = split_front_matter(markdown)
    if front is None:
        return DocumentMeta(), body
    meta = parse_front_matter(front)
    return (
        DocumentMeta(
            title=_meta_str(meta, "title"),
            author=_meta_str(meta, "author", "authors"),
            subject=_meta_str(meta, "subject", "description"),
        ),
        body,
    )
