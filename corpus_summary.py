import math
import concurrent.futures
from collections import Counter
from dataclasses import dataclass, field
from datetime import date

from pptx_archive import NoAnalyzableInputError, PresentationError
from lesson_structure import analyze_pptx


# ==================== CORPUS AGGREGATION ====================

GENERIC_FONTS = {"", "Arial"}
FALLBACK_FONTS = ["Standard system fonts"]
FALLBACK_FLOW = ["Introduction", "Content Presentation", "Practice Activities", "Assessment"]
TEACHING_STYLE = "Interactive and systematic approach with varied activities"
ASSESSMENT_APPROACH = "Multi-modal assessment through activities and discussion"
SPACING_PATTERN = "Organized layout with logical progression"
TEXT_FORMATTING = "Clear hierarchy with readable typography"

TOP_FONTS = 3
TOP_COLORS = 6
TOP_LAYOUTS = 4
TOP_FLOW_STEPS = 6


def round_half_up(x):
    return int(math.floor(x + 0.5))


@dataclass(frozen=True)
class CorpusSummary:
    overview: dict
    design_system: dict
    pedagogical_insights: dict
    visual_patterns: dict

    def to_dict(self):
        return {
            "overview": dict(self.overview),
            "designSystem": dict(self.design_system),
            "pedagogicalInsights": dict(self.pedagogical_insights),
            "visualPatterns": dict(self.visual_patterns),
        }


def _ranked(values, exclude=()):
    """Distinct values, most frequent first; ties keep first-seen order."""
    counts = Counter(v for v in values if v and v not in exclude)
    return [v for v, _ in counts.most_common()]


def _distinct(values):
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


def aggregate(structures, analysis_date=None):
    """Merge per-file LessonStructures into one CorpusSummary.

    Pure. Layout ties are broken by name so the top layouts do not depend
    on file order; font and colour ties keep the order files were given.
    """
    structures = list(structures)
    if not structures:
        raise NoAnalyzableInputError("No analyzable presentations in this corpus")

    total_lessons = len(structures)
    total_slides = sum(s.total_slides for s in structures)

    fonts = _ranked((f for s in structures for f in s.design_system.font_families), GENERIC_FONTS)
    colors = _ranked(
        c for s in structures
        for c in s.design_system.primary_colors + s.design_system.secondary_colors
    )

    layout_counts = Counter()
    for s in structures:
        layout_counts.update(s.common_layouts)
    common_layouts = [
        {"layout": layout, "usage": round_half_up(count / total_slides * 100) if total_slides else 0}
        for layout, count in sorted(layout_counts.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_LAYOUTS]
    ]

    # every label a file reported is kept; files already leave out the
    # "Content Slide" default
    activity_types = _distinct(a for s in structures for a in s.pedagogical_patterns.activity_types)
    flow = _distinct(step for s in structures for step in s.pedagogical_patterns.content_progression)

    uses_images = any("contextual-images" in s.design_system.image_styles for s in structures)

    return CorpusSummary(
        overview={
            "totalLessons": total_lessons,
            "totalSlides": total_slides,
            "averageSlidesPerLesson": round_half_up(total_slides / total_lessons) if total_slides else 0,
            "analysisDate": (analysis_date or date.today()).isoformat(),
        },
        design_system={
            "preferredFonts": fonts[:TOP_FONTS] or list(FALLBACK_FONTS),
            "dominantColors": colors[:TOP_COLORS],
            "commonLayouts": common_layouts,
        },
        pedagogical_insights={
            "teachingStyle": TEACHING_STYLE,
            "preferredActivityTypes": activity_types,
            "lessonStructurePattern": flow[:TOP_FLOW_STEPS] or list(FALLBACK_FLOW),
            "assessmentApproach": ASSESSMENT_APPROACH,
        },
        visual_patterns={
            "imageUsage": ("Strategic use of visuals to support content" if uses_images
                           else "Text-focused with minimal visuals"),
            "spacingPattern": SPACING_PATTERN,
            "textFormatting": TEXT_FORMATTING,
        },
    )


# ==================== CORPUS RUN ====================

@dataclass
class CorpusRun:
    """Outcome of analyzing a batch of files: per-file results plus the summary."""
    results: list = field(default_factory=list)
    structures: list = field(default_factory=list)
    summary: CorpusSummary = None

    @property
    def failed(self):
        return [r for r in self.results if not r.get("success")]

    @property
    def warnings(self):
        return [f"{r['filename']}: {r['error']}" for r in self.failed]

    def to_dict(self):
        return {
            "results": self.results,
            "total": len(self.results),
            "completed": len(self.structures),
            "failed": len(self.failed),
            "warnings": self.warnings,
            "summary": self.summary.to_dict() if self.summary else None,
        }


def analyze_corpus(files, max_workers=2, branding=None):
    """Analyze (filename, data) pairs in parallel and summarise the successes.

    A file that cannot be analyzed is reported in the run's results and does
    not stop the others. NoAnalyzableInputError is raised only when nothing
    succeeded.
    """
    files = list(files)

    def analyze_single(name, data):
        try:
            structure = analyze_pptx(data, source_name=name, branding=branding)
        except PresentationError as e:
            print(f"  Warning: {name} could not be analyzed: {e}")
            return {"filename": name, "error": str(e)}, None
        except Exception as e:
            print(f"  Error: {name} failed unexpectedly: {e}")
            return {"filename": name, "error": str(e)}, None
        result = {
            "filename": name,
            "success": True,
            "totalSlides": structure.total_slides,
            "failedSlides": list(structure.failed_slides),
            "analysis": structure.to_dict(),
        }
        return result, structure

    outcomes = [None] * len(files)
    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {executor.submit(analyze_single, name, data): i for i, (name, data) in enumerate(files)}
        for future in concurrent.futures.as_completed(futures):
            outcomes[futures[future]] = future.result()

    run = CorpusRun(
        results=[result for result, _ in outcomes],
        structures=[structure for _, structure in outcomes if structure is not None],
    )
    if not run.structures:
        raise NoAnalyzableInputError(f"None of the {len(files)} files could be analyzed", run.results)
    print(f"  Aggregating {len(run.structures)} of {len(files)} files")
    run.summary = aggregate(run.structures)
    return run


# ==================== STYLE PROFILE ====================

def style_profile_prompt(summary):
    """Text block describing the corpus style, for the lesson generator prompt."""
    data = summary.to_dict() if isinstance(summary, CorpusSummary) else summary
    design = data.get("designSystem") or {}
    insights = data.get("pedagogicalInsights") or {}
    visuals = data.get("visualPatterns") or {}

    layouts = ", ".join(f"{l['layout']} ({l['usage']}% usage)" for l in design.get("commonLayouts") or [])
    return f"""ANALYZED TEACHING METHODOLOGY (Match this EXACTLY):

PEDAGOGICAL PATTERNS FROM YOUR CORPUS:
- Teaching Style: {insights.get('teachingStyle') or 'Interactive'}
- Your Specific Activity Types: {', '.join(insights.get('preferredActivityTypes') or []) or 'Mixed activities'}
- Your Lesson Structure Pattern: {' → '.join(insights.get('lessonStructurePattern') or []) or 'Standard flow'}
- Your Assessment Approach: {insights.get('assessmentApproach') or 'Formative'}

DESIGN CONSISTENCY (Apply these patterns):
- Your Color Palette: {', '.join(design.get('dominantColors') or []) or 'Professional colors'}
- Your Typography: {', '.join(design.get('preferredFonts') or []) or 'Clear fonts'}
- Your Layout Patterns: {layouts or 'Standard layouts'}

VISUAL APPROACH FROM YOUR STYLE:
- Image Usage: {visuals.get('imageUsage') or 'Moderate visual support'}
- Content Organization: {visuals.get('spacingPattern') or 'Balanced layout'}
- Text Hierarchy: {visuals.get('textFormatting') or 'Clear structure'}

CRITICAL: Use the EXACT activity types found in your corpus. Do not deviate from your established patterns."""
