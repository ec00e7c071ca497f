"""
Tests for the archive reader, slide locator and theme extraction.
"""

import io
import zipfile

import pytest

from pptx_archive import (
    DEFAULT_SLIDE_SIZE,
    InvalidArchiveError,
    MissingPartError,
    MissingSlidesFolderError,
    PptxArchive,
    extract_theme_colors,
    extract_theme_fonts,
    locate_slides,
)


def zip_bytes(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


class TestPptxArchive:
    """Tests for opening archives and reading parts."""

    def test_rejects_non_zip_bytes(self):
        """Test that random bytes raise InvalidArchiveError."""
        with pytest.raises(InvalidArchiveError):
            PptxArchive(b"this is not a zip file")

    def test_rejects_archive_without_slides(self):
        """Test that a zip with no ppt/slides/ folder is refused."""
        data = zip_bytes({"ppt/presentation.xml": "<p/>", "docProps/core.xml": "<c/>"})
        with pytest.raises(MissingSlidesFolderError) as exc:
            PptxArchive(data)
        assert isinstance(exc.value, MissingPartError)

    def test_list_and_read_entries(self, ooxml):
        """Test listing entries by prefix and reading one as text."""
        data = ooxml.pptx([ooxml.slide(ooxml.shape("Hello"))], theme=ooxml.theme())
        with PptxArchive(data) as archive:
            assert archive.list_entries("ppt/slides/") == ["ppt/slides/slide1.xml"]
            assert "Hello" in archive.read_entry_as_text("ppt/slides/slide1.xml")
            assert archive.theme_parts() == ["ppt/theme/theme1.xml"]

    def test_missing_entry_raises(self, ooxml):
        """Test that reading an absent part raises MissingPartError."""
        with PptxArchive(ooxml.pptx([ooxml.slide()])) as archive:
            with pytest.raises(MissingPartError):
                archive.read_entry("ppt/slides/slide99.xml")

    def test_truncated_member_raises_missing_part(self, ooxml):
        """Test a member whose headers overstate its size is reported as unreadable."""
        data = ooxml.truncated([ooxml.slide(), ooxml.slide(), ooxml.slide()], "ppt/slides/slide2.xml")
        with PptxArchive(data) as archive:
            assert archive.slide_parts() == [
                "ppt/slides/slide1.xml", "ppt/slides/slide2.xml", "ppt/slides/slide3.xml"]
            with pytest.raises(MissingPartError):
                archive.read_entry("ppt/slides/slide2.xml")

    def test_accepts_file_object(self, ooxml):
        """Test that a binary file object works as well as bytes."""
        data = ooxml.pptx([ooxml.slide(), ooxml.slide()])
        with PptxArchive(io.BytesIO(data)) as archive:
            assert len(archive.slide_parts()) == 2

    def test_slide_size(self, ooxml):
        """Test slide size from presentation.xml, with the 4:3 default."""
        with PptxArchive(ooxml.pptx([ooxml.slide()], slide_size=(12192000, 6858000))) as archive:
            assert archive.slide_size() == (12192000, 6858000)
        with PptxArchive(ooxml.pptx([ooxml.slide()])) as archive:
            assert archive.slide_size() == DEFAULT_SLIDE_SIZE

    def test_slide_layout_part(self, ooxml):
        """Test resolving a slide's layout through its relationships part."""
        rels = (
            '<?xml version="1.0"?><Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
            '<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/slideLayout" '
            'Target="../slideLayouts/slideLayout2.xml"/></Relationships>'
        )
        data = ooxml.pptx([ooxml.slide()], extra={"ppt/slides/_rels/slide1.xml.rels": rels})
        with PptxArchive(data) as archive:
            assert archive.slide_parts() == ["ppt/slides/slide1.xml"]
            assert archive.slide_layout_part("ppt/slides/slide1.xml") == "ppt/slideLayouts/slideLayout2.xml"
            assert archive.slide_layout_part("ppt/slides/slide7.xml") is None


class TestLocateSlides:
    """Tests for slide discovery and ordering."""

    def test_numeric_not_lexicographic_order(self):
        """Test that slide10 sorts after slide2."""
        names = ["ppt/slides/slide10.xml", "ppt/slides/slide2.xml", "ppt/slides/slide1.xml"]
        assert locate_slides(names) == [
            "ppt/slides/slide1.xml",
            "ppt/slides/slide2.xml",
            "ppt/slides/slide10.xml",
        ]

    def test_ignores_relationship_parts_and_other_folders(self):
        """Test that _rels parts and other folders never count as slides."""
        names = [
            "ppt/slides/_rels/slide1.xml.rels",
            "ppt/slides/slide1.xml",
            "ppt/slideLayouts/slideLayout1.xml",
            "ppt/notesSlides/notesSlide1.xml",
        ]
        assert locate_slides(names) == ["ppt/slides/slide1.xml"]

    def test_primary_pattern_wins_over_loose_names(self):
        """Test that slideN.xml parts are preferred when present."""
        names = ["ppt/slides/slide1.xml", "ppt/slides/myslide_extra.xml", "ppt/slides/other.xml"]
        assert locate_slides(names) == ["ppt/slides/slide1.xml"]

    def test_fallback_to_names_containing_slide(self):
        """Test the second tier when nothing is named slideN.xml."""
        names = ["ppt/slides/Slide_B3.xml", "ppt/slides/Slide_A1.xml", "ppt/slides/notes.xml"]
        assert locate_slides(names) == ["ppt/slides/Slide_A1.xml", "ppt/slides/Slide_B3.xml"]

    def test_final_fallback_any_xml(self):
        """Test the last tier, where names without digits sort first."""
        names = ["ppt/slides/page2.xml", "ppt/slides/cover.xml", "ppt/slides/readme.txt"]
        assert locate_slides(names) == ["ppt/slides/cover.xml", "ppt/slides/page2.xml"]


class TestTheme:
    """Tests for theme colour and font extraction."""

    def test_theme_colors(self, ooxml):
        """Test that colour values are collected, upper-cased and deduplicated."""
        colors = extract_theme_colors(ooxml.theme(colors=("1f497d", "EEECE1", "1F497D")))
        assert colors == ["#000000", "#1F497D", "#EEECE1"]

    def test_percentages_are_not_colors(self, ooxml):
        """Test that six-digit tint/lumMod values are not mistaken for colours."""
        assert "#100000" not in extract_theme_colors(ooxml.theme())

    def test_invalid_values_and_bad_xml(self):
        """Test hex validation and that an unparsable theme gives no colours."""
        xml = (
            '<a:theme xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main">'
            '<a:srgbClr val="12345"/><a:srgbClr val="GGGGGG"/><a:srgbClr val="abcdef"/></a:theme>'
        )
        assert extract_theme_colors(xml) == ["#ABCDEF"]
        assert extract_theme_colors("<not closed") == []

    def test_theme_fonts(self, ooxml):
        """Test major/minor font references."""
        fonts = extract_theme_fonts(ooxml.theme(major="Georgia", minor="Verdana"))
        assert fonts == {"+mj-lt": "Georgia", "+mn-lt": "Verdana"}

    def test_archive_without_theme(self, ooxml):
        """Test that a missing theme part yields empty results, not an error."""
        with PptxArchive(ooxml.pptx([ooxml.slide()])) as archive:
            assert archive.theme_colors() == []
            assert archive.theme_fonts() == {}
