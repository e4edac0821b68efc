"""Parse the LaTeX subset produced by the tailoring model into layout blocks.

Supported: ``center``, ``itemize``/``enumerate`` (nestable), ``tabular``,
``\\section``/``\\subsection``, ``\\\\`` line breaks, ``\\vspace`` and
``\\hfill``; inline ``\\textbf``, ``\\textit``, ``\\emph``, ``\\href`` and
the usual escapes. List options (``[leftmargin=*]``), spacing commands
such as ``\\setlength`` and ``%`` comments are dropped. Inline
formatting is converted to the fpdf2 markdown dialect (``**bold**``,
``__italic__``).

Structurally broken markup raises ``RenderError`` rather than producing a
partial document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from qfix.core.errors import RenderError

LIST_ENVS = {"itemize", "enumerate"}
SUPPORTED_ENVS = LIST_ENVS | {"center", "tabular"}

# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


@dataclass
class Line:
    """One output line; ``right`` holds text after ``\\hfill``."""

    left: str
    right: str = ""
    large: bool = False


@dataclass
class Centered:
    lines: list[Line] = field(default_factory=list)


@dataclass
class Heading:
    text: str
    level: int = 1


@dataclass
class BulletItem:
    text: str
    level: int = 0
    number: int | None = None


@dataclass
class Bullets:
    items: list[BulletItem] = field(default_factory=list)


@dataclass
class Table:
    rows: list[list[str]] = field(default_factory=list)


@dataclass
class Paragraph:
    lines: list[Line] = field(default_factory=list)


@dataclass
class Spacer:
    height_pt: float


Block = Centered | Heading | Bullets | Table | Paragraph | Spacer

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_ENV_RE = re.compile(r"\\(begin|end)\{([^}]*)\}")
_COMMENT_RE = re.compile(r"(?<!\\)%.*$", re.MULTILINE)


def strip_comments(markup: str) -> str:
    """Drop unescaped ``%`` line comments."""
    return _COMMENT_RE.sub("", markup)


def _strip_escaped(text: str) -> str:
    return text.replace("\\\\", "  ").replace("\\{", "  ").replace("\\}", "  ")


def validate(markup: str) -> None:
    """Raise ``RenderError`` if braces or environments are unbalanced."""
    markup = strip_comments(markup)
    if not markup.strip():
        raise RenderError("Markup is empty")

    depth = 0
    for ch in _strip_escaped(markup):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                raise RenderError("Unbalanced braces: unexpected '}'")
    if depth:
        raise RenderError(f"Unbalanced braces: {depth} unclosed '{{'")

    stack: list[str] = []
    for kind, name in _ENV_RE.findall(markup):
        if name not in SUPPORTED_ENVS:
            raise RenderError(f"Unsupported environment: {name}")
        if kind == "begin":
            stack.append(name)
        elif not stack or stack[-1] != name:
            opened = stack[-1] if stack else "nothing"
            raise RenderError(f"\\end{{{name}}} does not close {opened}")
        else:
            stack.pop()
    if stack:
        raise RenderError(f"Unclosed environment: {stack[-1]}")


# ---------------------------------------------------------------------------
# Inline conversion
# ---------------------------------------------------------------------------

_INLINE_RULES = [
    (re.compile(r"\\href\{([^{}]*)\}\{([^{}]*)\}"), r"\2"),
    (re.compile(r"\\textbf\{([^{}]*)\}"), r"**\1**"),
    (re.compile(r"\\(?:textit|emph)\{([^{}]*)\}"), r"__\1__"),
    (re.compile(r"\\(?:underline|text|textrm|textsc|mbox)\{([^{}]*)\}"), r"\1"),
]
_SIZE_RE = re.compile(r"\\(?:Huge|huge|LARGE|Large|large|normalsize|small|footnotesize)\b\s*")
_LARGE_RE = re.compile(r"\\(?:Huge|huge|LARGE|Large)\b")
_LINEBREAK_RE = re.compile(r"\\\\(?:\[[^\]]*\])?")
_VSPACE_RE = re.compile(r"\\vspace\*?\{([^{}]*)\}")
# Spacing commands with no visible output.
_LAYOUT_RE = re.compile(
    r"\\(?:setlength|addtolength)\s*\{[^{}]*\}\s*\{[^{}]*\}"
    r"|\\vspace\*?\{[^{}]*\}"
    r"|\\(?:itemsep|parsep|topsep|parskip)\b\s*=?\s*(?:-?\d*\.?\d+\s*(?:pt|mm|cm|in|em|ex))?"
    r"|\\noindent\b"
)
_ESCAPES = {
    "\\&": "&",
    "\\%": "%",
    "\\#": "#",
    "\\$": "$",
    "\\_": "_",
    "\\{": "{",
    "\\}": "}",
}
_LEFTOVER_CMD_RE = re.compile(r"\\[a-zA-Z]+\*?")
_DASH_RE = re.compile(r"-{2,}")


def to_inline(text: str) -> str:
    """Convert inline LaTeX to fpdf2 markdown on a single line."""
    text = _LINEBREAK_RE.sub(" ", text)
    changed = True
    while changed:
        before = text
        for pattern, repl in _INLINE_RULES:
            text = pattern.sub(repl, text)
        changed = text != before

    text = _SIZE_RE.sub("", text)
    text = _LAYOUT_RE.sub("", text)
    for escaped, plain in _ESCAPES.items():
        text = text.replace(escaped, "\x00" + plain)
    text = _LEFTOVER_CMD_RE.sub("", text)
    # Remaining unescaped braces are grouping only; bare $ is math mode.
    text = re.sub(r"(?<!\x00)[{}$]", "", text)
    text = text.replace("\x00", "")
    text = text.replace("~", " ")
    # "--" toggles underline in fpdf2 markdown.
    text = _DASH_RE.sub("-", text)
    return " ".join(text.split())


def _split_lines(text: str) -> list[Line]:
    lines = []
    for raw in _LINEBREAK_RE.split(text):
        if not raw.strip():
            continue
        large = bool(_LARGE_RE.search(raw))
        left, _, right = raw.partition("\\hfill")
        left_inline, right_inline = to_inline(left), to_inline(right)
        if left_inline or right_inline:
            lines.append(Line(left=left_inline, right=right_inline, large=large))
    return lines


# ---------------------------------------------------------------------------
# Block parser
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"\\begin\{(?P<begin>\w+)\}"
    r"|\\end\{(?P<end>\w+)\}"
    r"|\\(?P<section>(?:sub)?section)\*?\{"
    r"|\\item\b(?:\[[^\]]*\])?"
)
# enumitem options, e.g. \begin{itemize}[leftmargin=*, noitemsep]
_LIST_OPTIONS_RE = re.compile(r"\s*\[[^\]]*\]")


def _read_group(text: str, start: int) -> tuple[str, int]:
    """Return the contents of the brace group opened just before *start*."""
    depth = 1
    i = start
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i], i + 1
        i += 1
    raise RenderError("Unterminated section title")


class _Parser:
    def __init__(self) -> None:
        self.blocks: list[Block] = []
        self.env: list[str] = []
        self.centered: Centered | None = None
        self.bullets: Bullets | None = None
        self.counters: list[int] = []
        self.table_text: list[str] = []

    # -- text between tokens -------------------------------------------------

    def text(self, chunk: str) -> None:
        if not self.env:
            self._top_level_text(chunk)
        elif self.env[-1] == "center":
            assert self.centered is not None
            self.centered.lines.extend(_split_lines(chunk))
        elif self.env[-1] == "tabular":
            self.table_text.append(chunk)
        else:
            chunk = _LAYOUT_RE.sub("", chunk)
            if not chunk.strip():
                return
            assert self.bullets is not None
            if self.counters[-1] == 0:
                raise RenderError("Text in a list before the first \\item")
            item = self.bullets.items[-1]
            item.text = " ".join(filter(None, [item.text, to_inline(chunk)]))

    def _top_level_text(self, chunk: str) -> None:
        for para in re.split(r"\n\s*\n", chunk):
            for space in _VSPACE_RE.findall(para):
                self.blocks.append(Spacer(_to_points(space)))
            lines = _split_lines(para)
            if lines:
                self.blocks.append(Paragraph(lines=lines))

    # -- tokens --------------------------------------------------------------

    def begin(self, name: str) -> None:
        if name in LIST_ENVS:
            if self.env and self.env[-1] not in LIST_ENVS:
                raise RenderError(f"A list cannot be nested inside {self.env[-1]}")
            if self.bullets is None:
                self.bullets = Bullets()
            self.counters.append(0)
        elif self.env:
            raise RenderError(f"{name} cannot be nested inside {self.env[-1]}")
        elif name == "center":
            self.centered = Centered()
        elif name == "tabular":
            self.table_text = []
        self.env.append(name)

    def end(self, name: str) -> None:
        self.env.pop()
        if name in LIST_ENVS:
            self.counters.pop()
            if not self.counters:
                assert self.bullets is not None
                if self.bullets.items:
                    self.blocks.append(self.bullets)
                self.bullets = None
        elif name == "center":
            assert self.centered is not None
            if self.centered.lines:
                self.blocks.append(self.centered)
            self.centered = None
        elif name == "tabular":
            table = _parse_table("".join(self.table_text))
            if table.rows:
                self.blocks.append(table)

    def item(self) -> None:
        if not self.env or self.env[-1] not in LIST_ENVS:
            raise RenderError("\\item outside of a list")
        assert self.bullets is not None
        self.counters[-1] += 1
        number = self.counters[-1] if self.env[-1] == "enumerate" else None
        self.bullets.items.append(
            BulletItem(text="", level=len(self.counters) - 1, number=number)
        )

    def section(self, title: str, level: int) -> None:
        if self.env:
            raise RenderError(f"\\section inside {self.env[-1]}")
        text = to_inline(title)
        if text:
            self.blocks.append(Heading(text=text, level=level))


def _parse_table(body: str) -> Table:
    table = Table()
    body = re.sub(r"\\hline|\\cline\{[^}]*\}", "", body)
    for row in re.split(r"\\\\", body):
        if not row.strip():
            continue
        cells = [to_inline(c) for c in re.split(r"(?<!\\)&", row)]
        if any(cells):
            table.rows.append(cells)
    return table


def _to_points(length: str) -> float:
    match = re.fullmatch(r"\s*(-?\d*\.?\d+)\s*(pt|mm|cm|in|em|ex)?\s*", length)
    if not match:
        return 0.0
    value = float(match.group(1))
    unit = match.group(2) or "pt"
    factor = {"pt": 1.0, "mm": 2.835, "cm": 28.35, "in": 72.0, "em": 11.0, "ex": 5.0}
    return max(0.0, value * factor[unit])


def parse(markup: str) -> list[Block]:
    """Validate *markup* and return its layout blocks in document order."""
    markup = strip_comments(markup)
    validate(markup)
    parser = _Parser()
    pos = 0
    for match in _TOKEN_RE.finditer(markup):
        if match.start() < pos:
            continue  # inside a section title already consumed
        parser.text(markup[pos:match.start()])
        if match.group("begin"):
            parser.begin(match.group("begin"))
            pos = match.end()
            if match.group("begin") == "tabular" and markup.startswith("{", pos):
                _, pos = _read_group(markup, pos + 1)  # column spec
            elif match.group("begin") in LIST_ENVS:
                options = _LIST_OPTIONS_RE.match(markup, pos)
                if options:
                    pos = options.end()
        elif match.group("end"):
            parser.end(match.group("end"))
            pos = match.end()
        elif match.group("section"):
            title, pos = _read_group(markup, match.end())
            parser.section(title, 2 if match.group("section").startswith("sub") else 1)
        else:
            parser.item()
            pos = match.end()
    parser.text(markup[pos:])

    if not any(not isinstance(b, Spacer) for b in parser.blocks):
        raise RenderError("Markup contains no renderable content")
    return parser.blocks
