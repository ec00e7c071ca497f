"""
Shared fixtures: hand-built OOXML parts and in-memory .pptx archives.
"""

import io
import struct
import zipfile

import pytest


NS = (
    'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships" '
    'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main"'
)


class OoxmlBuilder:
    """Small helpers for writing slide XML by hand."""

    def run(self, text, size=None, font=None, color=None):
        attrs = f' sz="{int(size * 100)}"' if size else ""
        inner = ""
        if color:
            inner += f'<a:solidFill><a:srgbClr val="{color}"/></a:solidFill>'
        if font:
            inner += f'<a:latin typeface="{font}"/>'
        return f'<a:r><a:rPr lang="en-US"{attrs}>{inner}</a:rPr><a:t>{text}</a:t></a:r>'

    def para(self, *runs, bullet=False):
        ppr = '<a:pPr><a:buChar char="&#8226;"/></a:pPr>' if bullet else ""
        body = "".join(r if r.startswith("<") else self.run(r) for r in runs)
        return f"<a:p>{ppr}{body}</a:p>"

    def shape(self, *paras, ph=None, x=0, y=None, name="TextBox"):
        nvpr = f'<p:nvPr><p:ph type="{ph}"/></p:nvPr>' if ph else "<p:nvPr/>"
        xfrm = ""
        if y is not None:
            xfrm = f'<a:xfrm><a:off x="{x}" y="{y}"/><a:ext cx="8000000" cy="1000000"/></a:xfrm>'
        body = "".join(p if p.startswith("<") else self.para(p) for p in paras)
        return (
            f'<p:sp><p:nvSpPr><p:cNvPr id="2" name="{name}"/><p:cNvSpPr/>{nvpr}</p:nvSpPr>'
            f"<p:spPr>{xfrm}</p:spPr>"
            f"<p:txBody><a:bodyPr/><a:lstStyle/>{body}</p:txBody></p:sp>"
        )

    def picture(self, x=0, y=0, cx=1000000, cy=1000000):
        return (
            '<p:pic><p:nvPicPr><p:cNvPr id="5" name="Picture"/><p:cNvPicPr/><p:nvPr/></p:nvPicPr>'
            '<p:blipFill><a:blip r:embed="rId2"/></p:blipFill>'
            f'<p:spPr><a:xfrm><a:off x="{x}" y="{y}"/><a:ext cx="{cx}" cy="{cy}"/></a:xfrm></p:spPr></p:pic>'
        )

    def table(self, *rows):
        cells = "".join(
            "<a:tr>" + "".join(f"<a:tc><a:txBody><a:p>{self.run(c)}</a:p></a:txBody></a:tc>" for c in row) + "</a:tr>"
            for row in rows
        )
        return (
            '<p:graphicFrame><p:nvGraphicFramePr><p:cNvPr id="4" name="Table"/><p:cNvGraphicFramePr/><p:nvPr/>'
            '</p:nvGraphicFramePr><p:xfrm><a:off x="0" y="2000000"/><a:ext cx="8000000" cy="3000000"/></p:xfrm>'
            f"<a:graphic><a:graphicData><a:tbl>{cells}</a:tbl></a:graphicData></a:graphic></p:graphicFrame>"
        )

    def slide(self, *shapes, bg=None):
        background = ""
        if bg:
            background = f'<p:bg><p:bgPr><a:solidFill><a:srgbClr val="{bg}"/></a:solidFill></p:bgPr></p:bg>'
        return (
            f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?><p:sld {NS}><p:cSld>{background}'
            f'<p:spTree><p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
            f'<p:grpSpPr/>{"".join(shapes)}</p:spTree></p:cSld></p:sld>'
        )

    def theme(self, colors=("1F497D", "EEECE1"), major="Calibri Light", minor="Calibri"):
        clrs = "".join(f'<a:accent{i}><a:srgbClr val="{c}"/></a:accent{i}>' for i, c in enumerate(colors, 1))
        return (
            f'<?xml version="1.0" encoding="UTF-8"?><a:theme {NS} name="Office"><a:themeElements>'
            f'<a:clrScheme name="Office"><a:dk1><a:sysClr val="windowText" lastClr="000000"/></a:dk1>{clrs}</a:clrScheme>'
            f'<a:fontScheme name="Office"><a:majorFont><a:latin typeface="{major}"/></a:majorFont>'
            f'<a:minorFont><a:latin typeface="{minor}"/></a:minorFont></a:fontScheme>'
            '<a:fmtScheme><a:fillStyleLst><a:gradFill><a:gsLst><a:gs pos="0"><a:schemeClr val="phClr">'
            '<a:tint val="100000"/><a:lumMod val="100000"/></a:schemeClr></a:gs></a:gsLst></a:gradFill>'
            "</a:fillStyleLst></a:fmtScheme></a:themeElements></a:theme>"
        )

    def pptx(self, slides, theme=None, extra=None, slide_size=None):
        """Zip slide XML (a list, or a dict of part name -> XML) into .pptx bytes."""
        if not isinstance(slides, dict):
            slides = {f"ppt/slides/slide{i}.xml": xml for i, xml in enumerate(slides, 1)}
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("[Content_Types].xml", '<?xml version="1.0"?><Types/>')
            if slide_size:
                zf.writestr(
                    "ppt/presentation.xml",
                    f'<?xml version="1.0"?><p:presentation {NS}>'
                    f'<p:sldSz cx="{slide_size[0]}" cy="{slide_size[1]}"/></p:presentation>',
                )
            for name, xml in slides.items():
                zf.writestr(name, xml)
            if theme:
                zf.writestr("ppt/theme/theme1.xml", theme)
            for name, data in (extra or {}).items():
                zf.writestr(name, data)
        return buf.getvalue()

    def truncated(self, slides, part, claimed=10_000_000):
        """Stored .pptx whose headers for part claim more bytes than the file holds."""
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_STORED) as zf:
            for i, xml in enumerate(slides, 1):
                zf.writestr(f"ppt/slides/slide{i}.xml", xml)
        data = bytearray(buf.getvalue())
        name = part.encode("utf-8")
        sizes = struct.pack("<II", claimed, claimed)
        local = data.find(name) - 30
        central = data.rfind(name) - 46
        data[local + 18:local + 26] = sizes
        data[central + 20:central + 28] = sizes
        return bytes(data)


@pytest.fixture
def ooxml():
    return OoxmlBuilder()


@pytest.fixture
def lesson_deck(ooxml):
    """Four-slide lesson: title, vocabulary, discussion, homework."""
    slides = [
        ooxml.slide(
            ooxml.shape(ooxml.para(ooxml.run("Animals Around Us", size=40, font="Georgia")), ph="ctrTitle", y=2000000),
            ooxml.shape(ooxml.para(ooxml.run("Unit 3", size=20)), ph="subTitle", y=4000000),
        ),
        ooxml.slide(
            ooxml.shape(ooxml.para(ooxml.run("Vocabulary: Animals", size=32, color="C00000")), ph="title", y=300000),
            ooxml.shape(
                ooxml.para("match the animal words to their pictures", bullet=True),
                y=1500000,
            ),
            ooxml.picture(x=6000000, y=2000000),
        ),
        ooxml.slide(
            ooxml.shape(ooxml.para(ooxml.run("Talk Time", size=32)), ph="title", y=300000),
            ooxml.shape(ooxml.para("Let's discuss your opinions on this topic"), y=1500000),
        ),
        ooxml.slide(
            ooxml.shape(ooxml.para(ooxml.run("Homework", size=32)), ph="title", y=300000),
            ooxml.shape(ooxml.para("Write five sentences"), y=1500000),
        ),
    ]
    return ooxml.pptx(slides, theme=ooxml.theme())
