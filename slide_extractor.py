import re
import xml.etree.ElementTree as etree
from dataclasses import dataclass, field
from typing import Optional, Tuple

from pptx_archive import SlidePartParseError, local_name


# ==================== SLIDE CONTENT EXTRACTION ====================
#
# Everything below looks elements up by local name, so the same code reads
# p:/a: prefixed parts, default-namespace parts, and hand-written fixtures.

DEFAULT_FONT_SIZE = 12.0
DEFAULT_FONT_FAMILY = "Arial"
DEFAULT_BACKGROUND = "#FFFFFF"
TEXT_HEAVY_RUNS = 5
MAX_TITLE_CHARS = 100

HINT_ORDER = ("images", "bullets", "table", "text-heavy")
TITLE_PLACEHOLDERS = {"title": "placeholder", "ctrTitle": "center-placeholder"}

_HEX6 = re.compile(r"^[0-9A-Fa-f]{6}$")
_SHAPES = ("sp", "pic", "graphicFrame", "cxnSp")


def rank_for_size(size_pt):
    """1 = likely title, 2 = subtitle, 3 = body."""
    if size_pt > 24:
        return 1
    if size_pt > 18:
        return 2
    return 3


@dataclass(frozen=True)
class RawTextRun:
    text: str
    font_size_pt: float = DEFAULT_FONT_SIZE
    font_family: str = DEFAULT_FONT_FAMILY
    color: Optional[str] = None
    hierarchy_rank: int = 0

    def __post_init__(self):
        if not self.hierarchy_rank:
            object.__setattr__(self, "hierarchy_rank", rank_for_size(self.font_size_pt))

    def to_dict(self):
        return {
            "text": self.text,
            "fontSizePt": self.font_size_pt,
            "fontFamily": self.font_family,
            "color": self.color,
            "hierarchyRank": self.hierarchy_rank,
        }


@dataclass(frozen=True)
class PictureBox:
    """Offset and extent of one picture shape, in EMU."""
    x: int = 0
    y: int = 0
    cx: int = 0
    cy: int = 0

    @property
    def center_x(self):
        return self.x + self.cx / 2


@dataclass(frozen=True)
class SlideContent:
    slide_index: int
    title: str = ""
    all_text: str = ""
    text_runs: Tuple[RawTextRun, ...] = ()
    has_images: bool = False
    has_table: bool = False
    has_bullets: bool = False
    layout_hints: frozenset = frozenset()
    title_source: str = "none"
    title_offset_y: Optional[int] = None
    pictures: Tuple[PictureBox, ...] = ()
    colors: Tuple[str, ...] = ()
    fonts: Tuple[str, ...] = ()
    background_color: str = DEFAULT_BACKGROUND
    shape_count: int = 0

    def hints(self):
        """Layout hints in their canonical order."""
        return [h for h in HINT_ORDER if h in self.layout_hints]

    def to_dict(self):
        return {
            "slideIndex": self.slide_index,
            "title": self.title,
            "allText": self.all_text,
            "textRuns": [r.to_dict() for r in self.text_runs],
            "hasImages": self.has_images,
            "hasTable": self.has_table,
            "hasBullets": self.has_bullets,
            "layoutHints": self.hints(),
            "backgroundColor": self.background_color,
        }


# --- OOXML access helpers ---

def iter_local(el, *names):
    """Descendants of el (el included) whose local name is one of names."""
    for node in el.iter():
        if local_name(node.tag) in names:
            yield node


def first_local(el, *names):
    return next(iter_local(el, *names), None)


def child_local(el, *path):
    """Follow a path of direct children by local name."""
    node = el
    for name in path:
        if node is None:
            return None
        node = next((c for c in node if local_name(c.tag) == name), None)
    return node


def parent_map(root):
    return {child: parent for parent in root.iter() for child in parent}


def ancestor(el, parents, *names):
    node = parents.get(el)
    while node is not None:
        if local_name(node.tag) in names:
            return node
        node = parents.get(node)
    return None


def _int_attr(el, name):
    if el is None:
        return None
    try:
        return int(el.get(name))
    except (TypeError, ValueError):
        return None


def shape_offset(shape):
    """(x, y) of a shape from its transform, or (None, None) when inherited."""
    xfrm = child_local(shape, "spPr", "xfrm")
    if xfrm is None:
        xfrm = child_local(shape, "xfrm")
    off = child_local(xfrm, "off") if xfrm is not None else None
    return _int_attr(off, "x"), _int_attr(off, "y")


def shape_extent(shape):
    xfrm = child_local(shape, "spPr", "xfrm")
    if xfrm is None:
        xfrm = child_local(shape, "xfrm")
    ext = child_local(xfrm, "ext") if xfrm is not None else None
    return _int_attr(ext, "cx"), _int_attr(ext, "cy")


def placeholder_type(shape):
    ph = child_local(shape, "nvSpPr", "nvPr", "ph")
    if ph is None:
        return None
    # a ph without a type is a body placeholder
    return ph.get("type", "body")


def text_body_text(shape):
    """Shape text: runs joined as-is within a paragraph, paragraphs by a space."""
    body = child_local(shape, "txBody")
    if body is None:
        return ""
    paragraphs = []
    for para in iter_local(body, "p"):
        text = "".join(t.text for t in iter_local(para, "t") if t.text).strip()
        if text:
            paragraphs.append(text)
    return " ".join(paragraphs).strip()


def solid_fill_color(el):
    """First srgbClr (or sysClr lastClr) under el, as '#RRGGBB'."""
    if el is None:
        return None
    for node in iter_local(el, "srgbClr", "sysClr"):
        val = node.get("val") if local_name(node.tag) == "srgbClr" else node.get("lastClr")
        if val and _HEX6.match(val):
            return "#" + val.upper()
    return None


def background_color(root):
    """Solid background fill declared on a slide or layout part, if any."""
    bg = first_local(root, "bg")
    return solid_fill_color(bg)


def _run_format(run, theme_fonts):
    size = DEFAULT_FONT_SIZE
    family = DEFAULT_FONT_FAMILY
    color = None
    rpr = child_local(run, "rPr") if run is not None else None
    if rpr is None:
        return size, family, color
    sz = _int_attr(rpr, "sz")
    if sz:
        size = sz / 100
    typeface = None
    for script in ("latin", "ea", "cs"):
        font = child_local(rpr, script)
        if font is not None and font.get("typeface"):
            typeface = font.get("typeface")
            break
    typeface = typeface or rpr.get("typeface")
    if typeface and typeface.startswith("+"):
        typeface = (theme_fonts or {}).get(typeface)
    if typeface:
        family = typeface
    color = solid_fill_color(child_local(rpr, "solidFill"))
    return size, family, color


def parse_slide_xml(xml, part="slide"):
    if etree.iselement(xml):
        return xml
    try:
        return etree.fromstring(xml)
    except (etree.ParseError, TypeError, ValueError) as e:
        raise SlidePartParseError(part, str(e)) from e


def extract_slide_content(xml, slide_index=1, theme_fonts=None, layout_background=None, part=None):
    """Parse one slide part into a SlideContent.

    xml may be the part's text, its bytes, or an already parsed element.
    theme_fonts resolves +mj-lt/+mn-lt font references; layout_background is
    used when the slide itself declares no background fill.
    """
    root = parse_slide_xml(xml, part or f"slide {slide_index}")
    parents = parent_map(root)

    runs = []
    run_shapes = []
    for t in iter_local(root, "t"):
        text = (t.text or "").strip()
        if len(text) <= 1:
            continue
        run = parents.get(t)
        if run is not None and local_name(run.tag) not in ("r", "fld"):
            run = None
        size, family, color = _run_format(run, theme_fonts)
        runs.append(RawTextRun(text=text, font_size_pt=size, font_family=family, color=color))
        run_shapes.append(ancestor(t, parents, *_SHAPES))

    title, title_source, title_offset_y = _find_title(root, runs, run_shapes)

    pictures = []
    for pic in iter_local(root, "pic"):
        x, y = shape_offset(pic)
        cx, cy = shape_extent(pic)
        pictures.append(PictureBox(x or 0, y or 0, cx or 0, cy or 0))

    has_images = bool(pictures) or first_local(root, "blip") is not None
    has_table = first_local(root, "tbl") is not None
    has_bullets = first_local(root, "buChar", "buAutoNum") is not None

    hints = set()
    if has_images:
        hints.add("images")
    if has_bullets:
        hints.add("bullets")
    if has_table:
        hints.add("table")
    if len(runs) > TEXT_HEAVY_RUNS:
        hints.add("text-heavy")

    colors = []
    for node in iter_local(root, "srgbClr"):
        val = node.get("val")
        if val and _HEX6.match(val) and "#" + val.upper() not in colors:
            colors.append("#" + val.upper())

    fonts = []
    for r in runs:
        if r.font_family not in fonts:
            fonts.append(r.font_family)

    shape_count = 0
    for shape in iter_local(root, *_SHAPES):
        if local_name(shape.tag) == "sp" and first_local(shape, "t") is None:
            continue
        shape_count += 1

    return SlideContent(
        slide_index=slide_index,
        title=title,
        all_text=" ".join(r.text.lower() for r in runs),
        text_runs=tuple(runs),
        has_images=has_images,
        has_table=has_table,
        has_bullets=has_bullets,
        layout_hints=frozenset(hints),
        title_source=title_source,
        title_offset_y=title_offset_y,
        pictures=tuple(pictures),
        colors=tuple(colors),
        fonts=tuple(fonts),
        background_color=background_color(root) or layout_background or DEFAULT_BACKGROUND,
        shape_count=shape_count,
    )


def _find_title(root, runs, run_shapes):
    """Returns (title, source, shape y offset)."""
    # 1. title / ctrTitle placeholder
    for sp in iter_local(root, "sp"):
        ph_type = placeholder_type(sp)
        if ph_type not in TITLE_PLACEHOLDERS:
            continue
        text = text_body_text(sp)
        if text:
            return text, TITLE_PLACEHOLDERS[ph_type], shape_offset(sp)[1]

    # 2. largest font, then highest on the slide
    candidates = []
    for order, (run, shape) in enumerate(zip(runs, run_shapes)):
        if shape is None or local_name(shape.tag) != "sp":
            continue
        y = shape_offset(shape)[1]
        candidates.append((-run.font_size_pt, y or 0, order, run.text, y))
    if candidates:
        candidates.sort()
        best = candidates[0]
        return best[3], "font-size", best[4]

    # 3. first short run anywhere (tables, graphic frames)
    for run, shape in zip(runs, run_shapes):
        if len(run.text) < MAX_TITLE_CHARS:
            y = shape_offset(shape)[1] if shape is not None else None
            return run.text, "first-run", y

    return "", "none", None
