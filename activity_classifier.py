from collections import namedtuple

from slide_extractor import SlideContent


# ==================== ACTIVITY / CONTENT CLASSIFICATION ====================
#
# Slide titles are free-form prose, so an activity label is found by a chain
# of strategies tried in order; the first one returning a label wins:
#
#   direct title map -> title keywords -> full-text keywords -> structure
#   -> position -> title as label -> "Content Slide"
#
# The tables are read-only. Bump CLASSIFIER_VERSION whenever one changes so
# stored analyses can be told apart.

CLASSIFIER_VERSION = "2"

DEFAULT_ACTIVITY = "Content Slide"
DEFAULT_CONTENT = "Main Content"
READING_ACTIVITY = "Reading Activities"

# When a slide carries "copyright" together with one of these, it is a
# boilerplate footer slide and never a reading task.
BRANDING_MARKERS = ("all rights reserved", "©")

ActivityPattern = namedtuple("ActivityPattern", ["category", "keywords", "priority"])

ACTIVITY_PATTERNS = (
    # Learning structure
    ActivityPattern("Learning Objectives", ("objective", "goal", "aim", "by the end", "will be able", "learning outcomes"), 10),
    ActivityPattern("Introduction", ("welcome", "introduction", "warm up", "ice breaker", "getting started", "let's begin"), 10),
    # Language skills
    ActivityPattern("Vocabulary Development", ("vocabulary", "new words", "key terms", "lexis", "word study", "meaning"), 9),
    ActivityPattern("Grammar Focus", ("grammar", "structure", "language point", "tense", "syntax", "form"), 9),
    ActivityPattern("Pronunciation Practice", ("pronunciation", "phonetics", "sounds", "intonation", "stress", "accent"), 9),
    # Interactive activities
    ActivityPattern("Matching Activities", ("matching", "match", "pair up", "connect", "link"), 8),
    ActivityPattern("Gap Fill Activities", ("fill in", "complete", "gap fill", "blank", "missing", "choose"), 8),
    ActivityPattern("Role Play", ("role play", "roleplay", "act out", "scenario", "dialogue", "conversation"), 8),
    ActivityPattern("Discussion Activities", ("discussion", "talk about", "share", "debate", "opinion", "think"), 8),
    # Skills practice
    ActivityPattern("Listening Activities", ("listening", "audio", "hear", "sound", "listen to"), 8),
    ActivityPattern(READING_ACTIVITY, ("reading", "text", "passage", "article", "read"), 8),
    ActivityPattern("Writing Activities", ("writing", "write", "compose", "essay", "paragraph"), 8),
    ActivityPattern("Speaking Activities", ("speaking", "present", "tell", "explain", "describe"), 8),
    # Practice and games
    ActivityPattern("Practice Activities", ("practice", "exercise", "drill", "try this", "activity", "task"), 7),
    ActivityPattern("Interactive Games", ("game", "quiz", "competition", "challenge", "play"), 7),
    ActivityPattern("Collaborative Learning", ("group work", "teamwork", "collaborate", "together", "pairs"), 7),
    # Assessment and review
    ActivityPattern("Assessment", ("test", "exam", "assessment", "check", "evaluate"), 8),
    ActivityPattern("Review & Summary", ("review", "summary", "recap", "what we learned", "consolidation"), 8),
    ActivityPattern("Feedback & Correction", ("feedback", "correction", "error", "mistake", "check your work"), 7),
    # Content delivery
    ActivityPattern("Content Presentation", ("presentation", "explanation", "demonstration", "show", "example"), 6),
    ActivityPattern("Homework Assignment", ("homework", "assignment", "next time", "for next class", "take home"), 9),
    ActivityPattern("Lesson Conclusion", ("conclusion", "summary", "wrap up", "ending", "goodbye", "thank you"), 8),
)

# Checked in order against the lowercased title; first phrase found wins.
TITLE_CATEGORY_MAP = (
    ("warm up", "Introduction"),
    ("ice breaker", "Introduction"),
    ("getting to know", "Introduction"),
    ("objectives", "Learning Objectives"),
    ("learning objectives", "Learning Objectives"),
    ("goals", "Learning Objectives"),
    ("new vocabulary", "Vocabulary Development"),
    ("vocabulary", "Vocabulary Development"),
    ("word bank", "Vocabulary Development"),
    ("grammar focus", "Grammar Focus"),
    ("grammar", "Grammar Focus"),
    ("listening", "Listening Activities"),
    ("reading", READING_ACTIVITY),
    ("speaking", "Speaking Activities"),
    ("writing", "Writing Activities"),
    ("discussion", "Discussion Activities"),
    ("group work", "Collaborative Learning"),
    ("pair work", "Collaborative Learning"),
    ("practice", "Practice Activities"),
    ("exercise", "Practice Activities"),
    ("activity", "Practice Activities"),
    ("game", "Interactive Games"),
    ("quiz", "Interactive Games"),
    ("review", "Review & Summary"),
    ("homework", "Homework Assignment"),
    ("conclusion", "Lesson Conclusion"),
)

CONTENT_TYPE_PATTERNS = (
    ("Learning Objectives", ("objective", "goal", "aim", "by the end")),
    ("Introduction", ("introduction", "welcome", "today we will", "warm up")),
    ("Vocabulary Introduction", ("vocabulary", "new words", "key terms")),
    ("Grammar Point", ("grammar", "structure", "language point")),
    ("Practice Activity", ("practice", "exercise", "try this")),
    ("Homework/Conclusion", ("homework", "assignment", "next time", "for next class")),
    ("Review/Summary", ("review", "summary", "recap", "what we learned")),
)

PRACTICE_MIN_RUNS = 3
SPARSE_TEXT_RUNS = 3
MIN_LABEL_CHARS = 2
MAX_LABEL_CHARS = 50


def best_pattern_match(text, suppressed=()):
    """(category, score) of the highest scoring pattern, or (None, 0).

    score = matched keywords x priority. Only a strictly higher score replaces
    the current best, so ties go to the category listed first.
    """
    lower = text.lower()
    best, best_score = None, 0
    for pattern in ACTIVITY_PATTERNS:
        if pattern.category in suppressed:
            continue
        matches = sum(1 for kw in pattern.keywords if kw in lower)
        score = matches * pattern.priority
        if score > best_score:
            best, best_score = pattern.category, score
    return best, best_score


def by_title_map(slide, suppressed):
    title = slide.title.strip().lower()
    if not title:
        return None
    for phrase, category in TITLE_CATEGORY_MAP:
        if phrase in title and category not in suppressed:
            return category
    return None


def by_title_keywords(slide, suppressed):
    title = slide.title.strip()
    if not title:
        return None
    return best_pattern_match(title, suppressed)[0]


def by_text_keywords(slide, suppressed):
    return best_pattern_match(f"{slide.title} {slide.all_text}", suppressed)[0]


def by_structure(slide, suppressed):
    runs = len(slide.text_runs)
    if slide.has_bullets and runs > PRACTICE_MIN_RUNS:
        return "Practice Activities"
    if slide.has_table:
        return "Matching Activities"
    if slide.has_images and runs < SPARSE_TEXT_RUNS:
        return "Content Presentation"
    if "text-heavy" in slide.layout_hints and not slide.has_bullets and READING_ACTIVITY not in suppressed:
        return READING_ACTIVITY
    return None


def by_position(slide, suppressed):
    if slide.slide_index == 1:
        return "Introduction"
    return None


def _names_suppressed(title, suppressed):
    lower = title.lower()
    if any(phrase in lower and category in suppressed for phrase, category in TITLE_CATEGORY_MAP):
        return True
    return any(
        kw in lower
        for pattern in ACTIVITY_PATTERNS if pattern.category in suppressed
        for kw in pattern.keywords
    )


def by_title_label(slide, suppressed):
    title = slide.title.strip()
    # a title naming a suppressed category must not come back as its own label
    if suppressed and _names_suppressed(title, suppressed):
        return None
    if MIN_LABEL_CHARS < len(title) < MAX_LABEL_CHARS:
        return " ".join(word[:1].upper() + word[1:] for word in title.split())
    return None


ACTIVITY_STRATEGIES = (
    by_title_map,
    by_title_keywords,
    by_text_keywords,
    by_structure,
    by_position,
    by_title_label,
)


def is_boilerplate(slide, branding=None):
    text = f"{slide.title} {slide.all_text}".lower()
    if "copyright" not in text:
        return False
    markers = tuple(BRANDING_MARKERS) + tuple(branding or ())
    return any(m.lower() in text for m in markers if m)


def categorize_activity(slide, branding=None):
    """Activity-type label for one slide."""
    suppressed = {READING_ACTIVITY} if is_boilerplate(slide, branding) else set()
    for strategy in ACTIVITY_STRATEGIES:
        label = strategy(slide, suppressed)
        if label:
            return label
    return DEFAULT_ACTIVITY


def determine_content_type(text):
    lower = text.lower()
    for category, keywords in CONTENT_TYPE_PATTERNS:
        if any(kw in lower for kw in keywords):
            return category
    return DEFAULT_CONTENT


def classify_slide(slide, branding=None):
    """(activity_type, content_type) for an extracted slide."""
    return categorize_activity(slide, branding), determine_content_type(slide.all_text)


def classify_text(title, all_text, slide_index=0, branding=None):
    """Classify from bare title and text, without any layout information."""
    slide = SlideContent(slide_index=slide_index, title=title or "", all_text=(all_text or "").lower())
    return classify_slide(slide, branding)
