"""Core pipeline for html2draft."""

from __future__ import annotations

import csv
import json
import logging
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

LOG = logging.getLogger("html2draft")

THREAD_BASE_URL = "https://www.bigwhitewall.com/talkabouts/thread"
BASE_URL_ENV = "HTML2DRAFT_BASE_URL"

REMOVED_PLACEHOLDER = "\n<p>[REMOVED]</p>\n"

SOURCE_SUFFIXES = (".html", ".htm", ".txt")


@dataclass
class ParserConfig:
    normalize_whitespace: bool = False
    track_source_positions: bool = False
    decode_entities: bool = False


@dataclass
class ConversionConfig:
    base_url: str = THREAD_BASE_URL
    parser: ParserConfig = field(default_factory=ParserConfig)


class FragmentParseError(RuntimeError):
    pass


def _resolve_log_level(verbose: bool, debug: bool) -> int:
    return logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)


def _configure_html2draft_logger(level: int) -> None:
    LOG.setLevel(level)
    LOG.propagate = False
    if not LOG.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler.setLevel(level)
        LOG.addHandler(handler)
    else:
        for handler in LOG.handlers:
            handler.setLevel(level)
            if handler.formatter is None:
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))


def setup_logging(verbose: bool, debug: bool) -> None:
    level = _resolve_log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    _configure_html2draft_logger(level)


def _progress_bar_line(current: int, total: int, width: int = 24) -> str:
    if total <= 0:
        return "[?]"
    clamped = max(0, min(current, total))
    filled = min(int((clamped / total) * width), width)
    return "[" + "#" * filled + "." * (width - filled) + "]"


def _log_verbose_progress(prefix: str, current: int, total: int, detail: Optional[str] = None) -> None:
    bar = _progress_bar_line(current, total)
    counter = f"[{current}/{total}]" if total > 0 else f"[{current}]"
    if total > 0:
        msg = f"{prefix} {bar} {counter} ({(current / total) * 100.0:.1f}%)"
    else:
        msg = f"{prefix} {bar} {counter}"
    if detail:
        msg = f"{msg} | {detail}"
    LOG.info(msg)


@dataclass
class Element:
    name: str
    attrs: Dict[str, str]
    children: List["Node"]


@dataclass
class Text:
    content: str


@dataclass
class Directive:
    """Comment, doctype, declaration, processing instruction or CDATA section."""

    kind: str = "comment"


Node = Union[Element, Text, Directive]


def serialize_node(node: Any) -> str:
    """JSON form of a node for log messages.

    Relies on the node being detached (see ``sanitize_tree``); a tree that still
    pointed back at its parent would recurse forever here.
    """
    if isinstance(node, (Element, Text, Directive)):
        payload = {"type": type(node).__name__.lower()}
        payload.update(asdict(node))
        return json.dumps(payload, ensure_ascii=False)
    return json.dumps({"type": type(node).__name__, "repr": repr(node)}, ensure_ascii=False)


class TagCategory(Enum):
    ANCHOR = "anchor"
    BLOCK = "block"
    INLINE = "inline"
    ORDERED_LIST = "ordered_list"
    UNORDERED_LIST = "unordered_list"
    LIST_ITEM = "list_item"
    IMAGE = "image"
    FORCED_REMOVAL = "forced_removal"
    LINE_BREAK = "line_break"
    SILENT_REMOVAL = "silent_removal"
    UNKNOWN = "unknown"


_TAG_GROUPS: Tuple[Tuple[TagCategory, Tuple[str, ...]], ...] = (
    (TagCategory.ANCHOR, ("a",)),
    (TagCategory.BLOCK, ("p", "h1", "h2", "h3", "h4", "h5", "h6", "dd", "div", "pre", "label", "blockquote")),
    (
        TagCategory.INLINE,
        (
            # "3" and "333" come from one specific legacy post
            "3",
            "333",
            "i",
            "u",
            "b",
            "s",
            "em",
            "dt",
            "dl",
            "tt",
            "del",
            "sup",
            "sub",
            "span",
            "abbr",
            "cite",
            "font",
            "name",
            "small",
            "center",
            "strong",
            "strike",
            "address",
        ),
    ),
    (TagCategory.ORDERED_LIST, ("ol",)),
    (TagCategory.UNORDERED_LIST, ("ul",)),
    (TagCategory.LIST_ITEM, ("li",)),
    (TagCategory.IMAGE, ("img",)),
    (TagCategory.FORCED_REMOVAL, ("tr", "word", "form", "table", "iframe", "edited", "insert", "fieldset")),
    (TagCategory.LINE_BREAK, ("br",)),
    (
        TagCategory.SILENT_REMOVAL,
        (
            "hr",
            "var",
            "html",
            "embed",
            "input",
            "button",
            "select",
            "option",
            "script",
            "script1",
            "checkbox",
            "textarea",
        ),
    ),
)


TAG_CATEGORIES: Mapping[str, TagCategory] = MappingProxyType(
    {name: category for category, names in _TAG_GROUPS for name in names}
)


def classify_tag(name: Optional[str]) -> TagCategory:
    if not name:
        return TagCategory.UNKNOWN
    return TAG_CATEGORIES.get(name, TagCategory.UNKNOWN)


_KNOWN_MALFORMED_PATCHES: Tuple[Tuple[str, str], ...] = (
    ("<-------------------------------this", "|-------------------------------this"),
    ("much--------------------------------------------->", "much---------------------------------------------|"),
)


def repair_raw_html(text: str) -> str:
    # <a href=""some-link"">example</a>
    repaired = text.replace('=""', '=\\"').replace('"">', '\\">')
    # escaped returns and tabs; escaped newlines stay
    repaired = repaired.replace("\\r", "")
    repaired = repaired.replace("&nbsp;", " ")
    repaired = repaired.replace("\\t", "")
    repaired = re.sub(r"&lt;/?p&gt;", "", repaired)
    for broken, fixed in _KNOWN_MALFORMED_PATCHES:
        repaired = repaired.replace(broken, fixed, 1)
    return repaired


def parse_fragment(text: str, config: Optional[ParserConfig] = None) -> List[Any]:
    try:
        from bs4 import BeautifulSoup  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"beautifulsoup4 not available: {exc}") from exc

    cfg = config or ParserConfig()
    # html.parser always decodes references; escaping "&" first hands the
    # source text back unchanged in both text nodes and attribute values
    markup = text if cfg.decode_entities else text.replace("&", "&amp;")
    try:
        soup = BeautifulSoup(
            markup,
            "html.parser",
            multi_valued_attributes=None,
            store_line_numbers=cfg.track_source_positions,
        )
    except Exception as exc:
        raise FragmentParseError(f"html.parser rejected fragment: {exc}") from exc

    if cfg.normalize_whitespace:
        _collapse_text_whitespace(soup)

    return list(soup.contents)


def _collapse_text_whitespace(soup) -> None:
    from bs4.element import NavigableString, PreformattedString  # type: ignore

    for string in list(soup.find_all(string=True)):
        if isinstance(string, PreformattedString) or not isinstance(string, NavigableString):
            continue
        collapsed = re.sub(r"\s+", " ", str(string))
        if collapsed != str(string):
            string.replace_with(NavigableString(collapsed))


def _directive_kind(node) -> Optional[str]:
    from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction  # type: ignore

    for cls, kind in (
        (Comment, "comment"),
        (Doctype, "doctype"),
        (Declaration, "declaration"),
        (ProcessingInstruction, "processing-instruction"),
        (CData, "cdata"),
    ):
        if isinstance(node, cls):
            return kind
    return None


def sanitize_tree(nodes: Iterable[Any]) -> List[Node]:
    """Copy a parsed tree into detached ``Element``/``Text``/``Directive`` nodes.

    The copy keeps tag names, attributes and children only: parent, sibling and
    source position links of the parser tree are left behind, so every node is
    owned by exactly one list. Already detached nodes are copied as they are,
    which makes the function idempotent.
    """
    detached: List[Node] = []
    for node in nodes:
        if isinstance(node, Element):
            detached.append(Element(node.name, dict(node.attrs), sanitize_tree(node.children)))
        elif isinstance(node, Text):
            detached.append(Text(node.content))
        elif isinstance(node, Directive):
            detached.append(Directive(node.kind))
        else:
            detached.append(_detach_page_element(node))
    return detached


def _detach_page_element(node) -> Any:
    from bs4.element import NavigableString, Tag  # type: ignore

    if isinstance(node, Tag):
        attrs = {str(key): ("" if value is None else str(value)) for key, value in node.attrs.items()}
        return Element(node.name, attrs, sanitize_tree(node.contents))
    kind = _directive_kind(node)
    if kind is not None:
        return Directive(kind)
    if isinstance(node, NavigableString):
        return Text(str(node))
    # handed to the transcoder as-is; it reports what it cannot classify
    return node


def canonicalize_href(href: str, base_url: str = THREAD_BASE_URL) -> str:
    # "\"https://www.bigwhitewall.com/talkabouts/post/\""
    fixed = href.replace('\\"', "")
    # ../432148/, ../432011/#Comment1295781, ../427943/welcome/#Comment1295906
    return fixed.replace("..", base_url, 1)


def transcode(nodes: Iterable[Node], log: Any = LOG, base_url: str = THREAD_BASE_URL) -> str:
    return "".join(_transcode_node(node, log, base_url) or "" for node in nodes)


def _transcode_node(node: Any, log: Any, base_url: str) -> Optional[str]:
    if isinstance(node, Text):
        return node.content
    if isinstance(node, Directive):
        return ""
    if not isinstance(node, Element):
        log.warning("Uncaught tag %s", serialize_node(node))
        return ""

    category = classify_tag(node.name)
    if category is TagCategory.ANCHOR:
        return _transcode_anchor(node, log, base_url)
    if category is TagCategory.BLOCK:
        return f"<p>{transcode(node.children, log, base_url)}</p>"
    if category is TagCategory.INLINE:
        return _plain_text(node, log, base_url)
    if category is TagCategory.ORDERED_LIST:
        return f"<ol>{transcode(node.children, log, base_url)}</ol>"
    if category is TagCategory.UNORDERED_LIST:
        return f"<ul>{transcode(node.children, log, base_url)}</ul>"
    if category is TagCategory.LIST_ITEM:
        return f"<li>{_plain_text(node, log, base_url)}</li>"
    if category is TagCategory.IMAGE:
        return f'<img src="{node.attrs.get("src")}" alt="{node.attrs.get("alt")}" />'
    if category is TagCategory.FORCED_REMOVAL:
        return REMOVED_PLACEHOLDER
    if category is TagCategory.LINE_BREAK:
        return "<br />"
    if category is TagCategory.SILENT_REMOVAL:
        return ""

    log.warning("Uncaught tag %s", serialize_node(node))
    return ""


def _plain_text(element: Element, log: Any, base_url: str) -> Optional[str]:
    # an element has no text of its own: childless elements yield None
    if not element.children:
        return None
    return transcode(element.children, log, base_url)


def _transcode_anchor(anchor: Element, log: Any, base_url: str) -> str:
    # <strong> and friends inside the anchor render as plain text
    text = _plain_text(anchor, log, base_url)
    if not text or not text.strip():
        return ""

    link = anchor.attrs.get("href")
    if not link or not link.strip():
        return text

    return f'<a href="{canonicalize_href(link, base_url)}">{text}</a>'


_PARAGRAPH_OPEN_RUN_RE = re.compile(r" ?<p>(?: ?<p>)+ ?")
_PARAGRAPH_CLOSE_RUN_RE = re.compile(r" ?</p>(?: ?</p>)+ ?")
_EMPTY_PARAGRAPH_RE = re.compile(r" ?<p> ?</p> ?")

NORMALIZATION_RULES: Tuple[Tuple[str, re.Pattern, str], ...] = (
    ("dedupe-open", _PARAGRAPH_OPEN_RUN_RE, "<p>"),
    ("dedupe-close", _PARAGRAPH_CLOSE_RUN_RE, "</p>"),
    ("newline-to-break", re.compile(r"\n"), "<br />"),
    ("drop-empty-paragraph", _EMPTY_PARAGRAPH_RE, ""),
    ("break-after-close", re.compile(r" ?</p>(?:<br />)+ ?"), "</p>"),
    ("break-before-open", re.compile(r" ?(?:<br />)+ ?<p> ?"), "<p>"),
    ("break-before-close", re.compile(r" ?(?:<br />)+ ?</p> ?"), "</p>"),
    ("break-between-paragraphs", re.compile(r" ?</p> ?<br /> ?<p> ?"), "</p><p>"),
    ("space-between-paragraphs", re.compile(r" ?</p> ?<p> ?"), "</p><p>"),
    # breaks removed above can leave paragraph tags adjacent again
    ("dedupe-open-final", _PARAGRAPH_OPEN_RUN_RE, "<p>"),
    ("dedupe-close-final", _PARAGRAPH_CLOSE_RUN_RE, "</p>"),
    ("drop-empty-paragraph-final", _EMPTY_PARAGRAPH_RE, ""),
)


def normalize_output(body: str) -> str:
    output = f"<p>{body.strip()}</p>"
    for _, pattern, replacement in NORMALIZATION_RULES:
        output = pattern.sub(replacement, output)
    return _balance_outer_paragraph(output)


def _balance_outer_paragraph(output: str) -> str:
    # an empty pair that swallowed the outer open or close tag leaves "<p>x" or "x</p>"
    if not output:
        return output
    if not output.startswith("<p>"):
        output = "<p>" + output
    if not output.endswith("</p>"):
        output = output + "</p>"
    return "" if output == "<p></p>" else output


def convert(text: str, config: Optional[ConversionConfig] = None, log: Any = None) -> str:
    cfg = config or ConversionConfig()
    logger = log if log is not None else LOG

    repaired = repair_raw_html(text)
    try:
        parsed = parse_fragment(repaired, cfg.parser)
    except FragmentParseError as exc:
        logger.error("Unable to parse fragment: %s", exc)
        parsed = []

    nodes = sanitize_tree(parsed)
    body = transcode(nodes, logger, cfg.base_url)
    return normalize_output(body)


def safe_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8", newline="\n")


def list_source_files(from_dir: Path) -> List[Path]:
    return sorted(p for p in from_dir.iterdir() if p.is_file() and p.suffix.lower() in SOURCE_SUFFIXES)


def convert_directory(
    *,
    from_dir: Path,
    to_dir: Path,
    config: Optional[ConversionConfig] = None,
    verbose: bool = False,
) -> List[Path]:
    sources = list_source_files(from_dir)
    if not to_dir.exists():
        to_dir.mkdir(parents=True, exist_ok=False)

    written: List[Path] = []
    for index, source in enumerate(sources, start=1):
        try:
            raw = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RuntimeError(f"Unable to read {source}: {exc}") from exc
        target = to_dir / f"{source.stem}.html"
        safe_write_text(target, convert(raw, config) + "\n")
        written.append(target)
        if verbose:
            _log_verbose_progress("Converting", index, len(sources), source.name)

    LOG.info("Converted %d file(s) into %s", len(written), to_dir)
    return written


def convert_csv(
    *,
    source_path: Path,
    target_path: Path,
    column: str,
    config: Optional[ConversionConfig] = None,
    verbose: bool = False,
) -> int:
    try:
        with source_path.open("r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            fieldnames = list(reader.fieldnames or [])
            rows = list(reader)
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise RuntimeError(f"Unable to read CSV {source_path}: {exc}") from exc

    if column not in fieldnames:
        raise ValueError(f"Column {column!r} not found in {source_path} (available: {', '.join(fieldnames)})")
    # DictReader keeps surplus fields under the None key, which DictWriter rejects
    for index, row in enumerate(rows, start=1):
        if None in row:
            raise ValueError(f"Record {index} of {source_path} has more fields than the header")

    for index, row in enumerate(rows, start=1):
        row[column] = convert(row.get(column) or "", config)
        if verbose:
            _log_verbose_progress("Converting rows", index, len(rows))

    target_path.parent.mkdir(parents=True, exist_ok=True)
    with target_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)

    LOG.info("Converted %d row(s) into %s", len(rows), target_path)
    return len(rows)
