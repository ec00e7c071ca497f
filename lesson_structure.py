from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import pptx_archive
from pptx_archive import (
    MissingPartError,
    NoSlidesRecoveredError,
    PptxArchive,
    SlidePartParseError,
    describe_source,
)
from slide_extractor import (
    DEFAULT_BACKGROUND,
    TEXT_HEAVY_RUNS,
    SlideContent,
    background_color,
    extract_slide_content,
    parse_slide_xml,
)
from activity_classifier import DEFAULT_ACTIVITY, DEFAULT_CONTENT, classify_slide


class Layout(str, Enum):
    TITLE_SLIDE = "Title Slide"
    TEXT_HEAVY = "Text Heavy"
    MIXED_CONTENT = "Mixed Content"
    VISUAL_FOCUSED = "Visual Focused"
    STANDARD = "Standard Layout"
    BULLET_POINTS = "Bullet Points"
    TABLE = "Table Layout"
    UNKNOWN = "Unknown Layout"


DEFAULT_ASSESSMENT = "Formative Assessment"
DEFAULT_INTRODUCTION_STYLE = "Direct Introduction"
DEFAULT_CONCLUSION_STYLE = "Standard Conclusion"


@dataclass(frozen=True)
class DesignPatterns:
    title_position: str = "none"
    content_layout: str = "text-only"
    image_alignment: str = "none"
    color_scheme: Tuple[str, ...] = ()
    font_hierarchy: Tuple[str, ...] = ()

    def to_dict(self):
        return {
            "titlePosition": self.title_position,
            "contentLayout": self.content_layout,
            "imageAlignment": self.image_alignment,
            "colorScheme": list(self.color_scheme),
            "fontHierarchy": list(self.font_hierarchy),
        }


@dataclass(frozen=True)
class SlideAnalysis:
    slide_index: int
    title: str
    layout: Layout
    background_color: str
    design_patterns: DesignPatterns
    activity_type: str
    content_type: str
    content: Optional[SlideContent] = None

    @property
    def is_placeholder(self):
        return self.content is None

    def to_dict(self):
        return {
            "slideNumber": self.slide_index,
            "title": self.title,
            "layout": self.layout.value,
            "backgroundColor": self.background_color,
            "designPatterns": self.design_patterns.to_dict(),
            "activityType": self.activity_type,
            "contentType": self.content_type,
            "content": self.content.to_dict() if self.content else None,
        }


@dataclass(frozen=True)
class DesignSystem:
    primary_colors: List[str] = field(default_factory=list)
    secondary_colors: List[str] = field(default_factory=list)
    font_families: List[str] = field(default_factory=list)
    logo_positions: List[str] = field(default_factory=list)
    image_styles: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "primaryColors": list(self.primary_colors),
            "secondaryColors": list(self.secondary_colors),
            "fontFamilies": list(self.font_families),
            "logoPositions": list(self.logo_positions),
            "imageStyles": list(self.image_styles),
        }


@dataclass(frozen=True)
class PedagogicalPatterns:
    introduction_style: str = DEFAULT_INTRODUCTION_STYLE
    content_progression: List[str] = field(default_factory=list)
    activity_types: List[str] = field(default_factory=list)
    assessment_methods: List[str] = field(default_factory=lambda: [DEFAULT_ASSESSMENT])
    conclusion_style: str = DEFAULT_CONCLUSION_STYLE

    def to_dict(self):
        return {
            "introductionStyle": self.introduction_style,
            "contentProgression": list(self.content_progression),
            "activityTypes": list(self.activity_types),
            "assessmentMethods": list(self.assessment_methods),
            "conclusionStyle": self.conclusion_style,
        }


@dataclass(frozen=True)
class LessonStructure:
    total_slides: int
    lesson_flow: List[str]
    common_layouts: Dict[str, int]
    design_system: DesignSystem
    pedagogical_patterns: PedagogicalPatterns
    slides: Tuple[SlideAnalysis, ...] = ()
    source_name: str = ""
    failed_slides: Tuple[int, ...] = ()

    def to_dict(self, include_slides=False):
        data = {
            "totalSlides": self.total_slides,
            "lessonFlow": list(self.lesson_flow),
            "commonLayouts": dict(self.common_layouts),
            "designSystem": self.design_system.to_dict(),
            "pedagogicalPatterns": self.pedagogical_patterns.to_dict(),
        }
        if include_slides:
            data["slides"] = [s.to_dict() for s in self.slides]
        return data

    @classmethod
    def from_dict(cls, data, source_name=""):
        """Rebuild a stored (JSON) structure so it can join a corpus run."""
        design = data.get("designSystem") or {}
        patterns = data.get("pedagogicalPatterns") or {}
        return cls(
            total_slides=int(data.get("totalSlides", 0)),
            lesson_flow=list(data.get("lessonFlow") or []),
            common_layouts={k: int(v) for k, v in (data.get("commonLayouts") or {}).items()},
            design_system=DesignSystem(
                primary_colors=list(design.get("primaryColors") or []),
                secondary_colors=list(design.get("secondaryColors") or []),
                font_families=list(design.get("fontFamilies") or []),
                logo_positions=list(design.get("logoPositions") or []),
                image_styles=list(design.get("imageStyles") or []),
            ),
            pedagogical_patterns=PedagogicalPatterns(
                introduction_style=patterns.get("introductionStyle", DEFAULT_INTRODUCTION_STYLE),
                content_progression=list(patterns.get("contentProgression") or []),
                activity_types=list(patterns.get("activityTypes") or []),
                assessment_methods=list(patterns.get("assessmentMethods") or [DEFAULT_ASSESSMENT]),
                conclusion_style=patterns.get("conclusionStyle", DEFAULT_CONCLUSION_STYLE),
            ),
            source_name=source_name,
        )


# ==================== PER-SLIDE ANALYSIS ====================

def determine_layout(content):
    runs = len(content.text_runs)
    images = len(content.pictures) or (1 if content.has_images else 0)
    if content.has_table:
        return Layout.TABLE
    if runs == 1 and images == 0:
        return Layout.TITLE_SLIDE
    if runs > TEXT_HEAVY_RUNS and images == 0:
        return Layout.TEXT_HEAVY
    if images and runs:
        return Layout.MIXED_CONTENT
    if images > 1:
        return Layout.VISUAL_FOCUSED
    if content.has_bullets:
        return Layout.BULLET_POINTS
    return Layout.STANDARD


def determine_title_position(content, slide_size):
    if not content.title:
        return "none"
    if content.title_source == "center-placeholder":
        return "center"
    if content.title_offset_y is None:
        return "top"
    height = slide_size[1]
    if content.title_offset_y < height / 3:
        return "top"
    if content.title_offset_y > height * 2 / 3:
        return "bottom"
    return "center"


def determine_content_layout(content):
    others = content.shape_count - (1 if content.title else 0)
    if others <= 0:
        return "text-only"
    if others == 1:
        return "single-focus"
    return "multi-element"


def determine_image_alignment(content, slide_size):
    if not content.pictures:
        return "none"
    width = slide_size[0]
    center = sum(p.center_x for p in content.pictures) / len(content.pictures)
    if center < width / 3:
        return "left"
    if center > width * 2 / 3:
        return "right"
    return "center"


def analyze_slide(content, slide_size=pptx_archive.DEFAULT_SLIDE_SIZE, branding=None):
    """Classify an extracted slide and derive its layout and design patterns."""
    activity_type, content_type = classify_slide(content, branding)
    return SlideAnalysis(
        slide_index=content.slide_index,
        title=content.title,
        layout=determine_layout(content),
        background_color=content.background_color,
        design_patterns=DesignPatterns(
            title_position=determine_title_position(content, slide_size),
            content_layout=determine_content_layout(content),
            image_alignment=determine_image_alignment(content, slide_size),
            color_scheme=content.colors,
            font_hierarchy=content.fonts,
        ),
        activity_type=activity_type,
        content_type=content_type,
        content=content,
    )


def placeholder_analysis(slide_index):
    """Neutral stand-in for a slide that could not be read."""
    return SlideAnalysis(
        slide_index=slide_index,
        title="",
        layout=Layout.UNKNOWN,
        background_color=DEFAULT_BACKGROUND,
        design_patterns=DesignPatterns(title_position="top"),
        activity_type=DEFAULT_ACTIVITY,
        content_type=DEFAULT_CONTENT,
    )


# ==================== LESSON AGGREGATION ====================

def _distinct(values):
    seen = []
    for v in values:
        if v and v not in seen:
            seen.append(v)
    return seen


def logo_positions(slides, slide_size):
    width, height = slide_size
    positions = []
    for slide in slides:
        if slide.content is None:
            continue
        for pic in slide.content.pictures:
            near_top = pic.y < height * 0.15
            if near_top and pic.x < width * 0.15:
                positions.append("top-left")
            elif near_top and pic.x + pic.cx > width * 0.85:
                positions.append("top-right")
            elif near_top:
                positions.append("header-area")
            elif pic.y + pic.cy > height * 0.85:
                positions.append("footer-area")
    return _distinct(positions)


def image_styles(slides):
    if any(s.content is not None and s.content.has_images for s in slides):
        return ["contextual-images", "professional-layout"]
    return ["text-focused", "minimal-visuals"]


def content_progression(slides):
    flow = []
    last = len(slides) - 1
    for i, slide in enumerate(slides):
        if slide.activity_type and slide.activity_type != DEFAULT_ACTIVITY:
            flow.append(slide.activity_type)
        elif slide.content_type and slide.content_type != DEFAULT_CONTENT:
            flow.append(slide.content_type)
        elif i == 0:
            flow.append("Introduction")
        elif i == last:
            flow.append("Conclusion")
        else:
            flow.append("Content Development")
    return flow


def build_lesson_structure(slides, theme_colors=(), slide_size=pptx_archive.DEFAULT_SLIDE_SIZE, source_name=""):
    """Fold the ordered slide analyses of one file into a LessonStructure."""
    slides = sorted(slides, key=lambda s: s.slide_index)

    layouts = {}
    for slide in slides:
        layouts[slide.layout.value] = layouts.get(slide.layout.value, 0) + 1

    colors = _distinct(c for s in slides for c in s.design_patterns.color_scheme)
    if len(colors) < 6:
        colors = _distinct(colors + list(theme_colors))
    fonts = _distinct(f for s in slides for f in s.design_patterns.font_hierarchy)

    content_types = [s.content_type for s in slides if s.content_type]

    return LessonStructure(
        total_slides=len(slides),
        lesson_flow=[s.activity_type or s.content_type or DEFAULT_ACTIVITY for s in slides],
        common_layouts=layouts,
        design_system=DesignSystem(
            primary_colors=colors[:3],
            secondary_colors=colors[3:6],
            font_families=fonts[:3],
            logo_positions=logo_positions(slides, slide_size),
            image_styles=image_styles(slides),
        ),
        pedagogical_patterns=PedagogicalPatterns(
            introduction_style=content_types[0] if content_types else DEFAULT_INTRODUCTION_STYLE,
            content_progression=content_progression(slides),
            activity_types=_distinct(s.activity_type for s in slides if s.activity_type != DEFAULT_ACTIVITY),
            assessment_methods=[DEFAULT_ASSESSMENT],
            conclusion_style=content_types[-1] if content_types else DEFAULT_CONCLUSION_STYLE,
        ),
        slides=tuple(slides),
        source_name=source_name,
        failed_slides=tuple(s.slide_index for s in slides if s.is_placeholder),
    )


def _layout_background(archive, part, cache):
    layout_part = archive.slide_layout_part(part)
    if not layout_part:
        return None
    if layout_part not in cache:
        try:
            cache[layout_part] = background_color(parse_slide_xml(archive.read_entry(layout_part), layout_part))
        except (MissingPartError, SlidePartParseError):
            cache[layout_part] = None
    return cache[layout_part]


def analyze_archive(archive, source_name="", branding=None):
    """Run every slide of an open archive through extraction and classification."""
    parts = archive.slide_parts()
    print(f"  Analyzing {source_name or 'presentation'}: {len(parts)} slide parts")
    if not parts:
        raise NoSlidesRecoveredError(f"No slide parts found in {source_name or 'presentation'}")

    slide_size = archive.slide_size()
    theme_fonts = archive.theme_fonts()
    layout_backgrounds = {}

    slides = []
    for i, part in enumerate(parts, start=1):
        try:
            xml = archive.read_entry(part)
        except MissingPartError as e:
            print(f"    Slide {i} ({part}) skipped: {e}")
            slides.append(placeholder_analysis(i))
            continue
        try:
            content = extract_slide_content(
                xml, i,
                theme_fonts=theme_fonts,
                layout_background=_layout_background(archive, part, layout_backgrounds),
                part=part,
            )
        except SlidePartParseError as e:
            print(f"    Slide {i} skipped: {e}")
            slides.append(placeholder_analysis(i))
            continue
        slides.append(analyze_slide(content, slide_size, branding))

    if all(s.is_placeholder for s in slides):
        raise NoSlidesRecoveredError(f"None of the {len(parts)} slides in {source_name or 'presentation'} could be read")

    return build_lesson_structure(slides, archive.theme_colors(), slide_size, source_name)


def analyze_pptx(source, source_name=None, branding=None):
    """Bytes (or a path / binary file) of a .pptx in, LessonStructure out."""
    name = source_name or describe_source(source)
    with PptxArchive(source) as archive:
        structure = analyze_archive(archive, name, branding)
    if structure.failed_slides:
        print(f"  Warning: {name}: {len(structure.failed_slides)} slide(s) replaced by placeholders")
    return structure
