import io
import os
import re
import zipfile
import posixpath
import xml.etree.ElementTree as etree
import zlib


# ==================== ERRORS ====================

class PresentationError(Exception):
    """Base class for everything that can go wrong while reading a deck."""


class InvalidArchiveError(PresentationError):
    """The input bytes are not a zip container."""


class MissingPartError(PresentationError):
    """A part the pipeline depends on is not in the archive."""


class MissingSlidesFolderError(MissingPartError):
    """The archive has no ppt/slides/ folder."""


class SlidePartParseError(PresentationError):
    """One slide part is missing or its XML is malformed."""

    def __init__(self, part, detail=""):
        self.part = part
        message = f"Could not parse slide part {part}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class NoSlidesRecoveredError(PresentationError):
    """No slide of a file could be analyzed."""


class NoAnalyzableInputError(PresentationError):
    """A corpus run produced no LessonStructure at all."""

    def __init__(self, message, results=None):
        super().__init__(message)
        self.results = list(results or [])


# ==================== ARCHIVE READER ====================

SLIDES_FOLDER = "ppt/slides/"
THEME_FOLDER = "ppt/theme/"

# 10in x 7.5in, the OOXML default when presentation.xml has no sldSz
DEFAULT_SLIDE_SIZE = (9144000, 6858000)

_REL_NS = "{http://schemas.openxmlformats.org/package/2006/relationships}"
_SLIDE_NAME = re.compile(r"^slide\d+\.xml$", re.IGNORECASE)
_DIGITS = re.compile(r"(\d+)")
_HEX6 = re.compile(r"^[0-9A-Fa-f]{6}$")
_COLOR_ATTRS = {"srgbClr": "val", "sysClr": "lastClr"}


def local_name(tag):
    """Tag name without its '{namespace}' prefix."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


class PptxArchive:
    """Read-only view over the parts of a .pptx zip container."""

    def __init__(self, data):
        if isinstance(data, (bytes, bytearray)):
            source = io.BytesIO(data)
        else:
            source = data
        try:
            self._zf = zipfile.ZipFile(source, "r")
        except (zipfile.BadZipFile, OSError, ValueError) as e:
            raise InvalidArchiveError(f"Not a valid .pptx archive: {e}") from e
        self._names = [n for n in self._zf.namelist() if not n.endswith("/")]
        if not self.has_folder(SLIDES_FOLDER):
            self._zf.close()
            raise MissingSlidesFolderError("No slides folder found in PowerPoint file")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self._zf.close()

    def has_folder(self, prefix):
        return any(n.startswith(prefix) for n in self._names)

    def list_entries(self, prefix=""):
        """Names of all file entries starting with prefix, in archive order."""
        return [n for n in self._names if n.startswith(prefix)]

    def read_entry(self, name):
        try:
            return self._zf.read(name)
        except KeyError as e:
            raise MissingPartError(f"Part not found in archive: {name}") from e
        except (zipfile.BadZipFile, zlib.error, OSError, RuntimeError, EOFError) as e:
            raise MissingPartError(f"Could not read part {name}: {e}") from e

    def read_entry_as_text(self, name):
        return self.read_entry(name).decode("utf-8-sig", errors="replace")

    def slide_parts(self):
        """Ordered slide part names (see locate_slides)."""
        return locate_slides(self.list_entries(SLIDES_FOLDER))

    def slide_size(self):
        """(cx, cy) of the slides in EMU."""
        try:
            root = etree.fromstring(self.read_entry("ppt/presentation.xml"))
        except (MissingPartError, etree.ParseError):
            return DEFAULT_SLIDE_SIZE
        for el in root.iter():
            if local_name(el.tag) == "sldSz":
                try:
                    return int(el.get("cx")), int(el.get("cy"))
                except (TypeError, ValueError):
                    break
        return DEFAULT_SLIDE_SIZE

    def slide_layout_part(self, slide_part):
        """Path of the slideLayout part a slide is built on, or None."""
        folder, name = posixpath.split(slide_part)
        rels_path = posixpath.join(folder, "_rels", name + ".rels")
        if rels_path not in self._names:
            return None
        try:
            rels_tree = etree.fromstring(self.read_entry(rels_path))
        except (MissingPartError, etree.ParseError):
            return None
        for rel in rels_tree.iter(_REL_NS + "Relationship"):
            if rel.get("Type", "").endswith("/slideLayout"):
                return posixpath.normpath(posixpath.join(folder, rel.get("Target", "")))
        return None

    def theme_parts(self):
        return [n for n in self.list_entries(THEME_FOLDER)
                if n.endswith(".xml") and "/" not in n[len(THEME_FOLDER):]]

    def theme_colors(self):
        """Distinct theme colours across every theme part, first-seen order."""
        colors = []
        for name in self.theme_parts():
            try:
                text = self.read_entry_as_text(name)
            except MissingPartError:
                continue
            for color in extract_theme_colors(text):
                if color not in colors:
                    colors.append(color)
        return colors

    def theme_fonts(self):
        fonts = {}
        for name in self.theme_parts():
            try:
                text = self.read_entry_as_text(name)
            except MissingPartError:
                continue
            for ref, typeface in extract_theme_fonts(text).items():
                fonts.setdefault(ref, typeface)
        return fonts


# ==================== SLIDE LOCATOR ====================

def _slide_number(name):
    m = _DIGITS.search(posixpath.basename(name))
    return int(m.group(1)) if m else 0


def locate_slides(names, folder=SLIDES_FOLDER):
    """Pick the slide parts out of a folder listing and sort them numerically.

    Export tools do not all follow the slideN.xml convention, so three tiers
    are tried in turn: slide<digits>.xml, any .xml with "slide" in its name,
    then any .xml at all. Only direct children of the folder are considered
    (ppt/slides/_rels/ holds relationship parts, not slides).
    """
    direct = []
    for n in names:
        if not n.startswith(folder):
            continue
        rest = n[len(folder):]
        if rest and "/" not in rest and rest.lower().endswith(".xml"):
            direct.append(n)

    found = [n for n in direct if _SLIDE_NAME.match(posixpath.basename(n))]
    if not found:
        found = [n for n in direct if "slide" in posixpath.basename(n).lower()]
    if not found:
        found = list(direct)

    found.sort(key=lambda n: (_slide_number(n), n))
    return found


# ==================== THEME ====================

def extract_theme_colors(theme_xml):
    """Every six-digit RGB value in a theme document, as '#RRGGBB'.

    A theme that is missing or does not parse is not an error: the design
    system simply gets no theme colours.
    """
    try:
        root = etree.fromstring(theme_xml)
    except (etree.ParseError, TypeError, ValueError):
        return []
    colors = []
    for el in root.iter():
        # lumMod/tint/shade carry six-digit percentages in val, so only
        # colour elements count
        attr = _COLOR_ATTRS.get(local_name(el.tag))
        if attr:
            val = el.get(attr)
            if val and _HEX6.match(val):
                color = "#" + val.upper()
                if color not in colors:
                    colors.append(color)
    return colors


def extract_theme_fonts(theme_xml):
    """Map the theme font references (+mj-lt, +mn-lt, ...) to typefaces."""
    try:
        root = etree.fromstring(theme_xml)
    except (etree.ParseError, TypeError, ValueError):
        return {}
    fonts = {}
    for el in root.iter():
        kind = local_name(el.tag)
        if kind not in ("majorFont", "minorFont"):
            continue
        prefix = "+mj-" if kind == "majorFont" else "+mn-"
        for child in el:
            script = {"latin": "lt", "ea": "ea", "cs": "cs"}.get(local_name(child.tag))
            typeface = child.get("typeface")
            if script and typeface:
                fonts.setdefault(prefix + script, typeface)
    return fonts


def describe_source(source, fallback="presentation.pptx"):
    """Human-readable name for whatever was handed to the pipeline."""
    if isinstance(source, (str, os.PathLike)):
        return os.path.basename(os.fspath(source))
    return getattr(source, "name", None) or fallback
