"""
Report assembly: split the generated profile text into its known sections,
map them onto the report layout for the order's tier and add-ons, and render
the result to a PDF with reportlab.
"""
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import HRFlowable, Image, PageBreak, Paragraph, SimpleDocTemplate, Spacer

from soulsketch.errors import PdfRenderError
from soulsketch.schemas import QuizAnswers
from soulsketch.services import astro
from soulsketch.services.payments import tier_level

logger = logging.getLogger(__name__)

CORE_HEADINGS = ["Overview", "Personality & Vibe", "Attachment Style & Love Languages",
                 "First Meeting Scenario", "What They're Looking For Now", "Numerology/Astro Notes"]
PLUS_HEADINGS = ["Location Insights", "Enhanced Astrological Analysis"]
PREMIUM_HEADINGS = ["Full Astrological AI Analysis", "Personal Relationship Strategy Guide",
                    "Spiritual Growth & Preparation", "Cosmic Timing & Manifestation"]
ADDON_HEADINGS = {"aura": "Aura Reading", "twin_flame": "Twin Flame Connection", "past_life": "Past Life Glimpse"}
SECTION_HEADINGS = CORE_HEADINGS + PLUS_HEADINGS + PREMIUM_HEADINGS + list(ADDON_HEADINGS.values())

# (source heading, title printed in the report, default when the section is missing)
CORE_LAYOUT = [
    ("Overview", "Overview", "Your soulmate analysis reveals unique insights about your ideal connection."),
    ("Personality & Vibe", "Personality & Energy", "A warm, compatible personality awaits."),
    ("Attachment Style & Love Languages", "Connection Style",
     "Your connection will be built on understanding and compatibility."),
    ("First Meeting Scenario", "How You'll Meet", "Your paths will cross in a meaningful way."),
    ("What They're Looking For Now", "What They're Seeking", "Someone seeking the same depth of connection as you."),
    ("Numerology/Astro Notes", "Cosmic Insights", None),
]
LOCATION_TITLE = "Soulmate Location Prediction"
PLUS_LAYOUT = [("Location Insights", "Location & Timing Insights"),
               ("Enhanced Astrological Analysis", "Advanced Astrological Analysis")]
PREMIUM_LAYOUT = [("Full Astrological AI Analysis", "Complete Birth Chart Analysis"),
                  ("Personal Relationship Strategy Guide", "Personal Relationship Strategy"),
                  ("Spiritual Growth & Preparation", "Spiritual Growth & Preparation"),
                  ("Cosmic Timing & Manifestation", "Cosmic Timing & Manifestation")]
ADDON_TITLES = {"aura": "Your Aura Reading", "twin_flame": "Twin Flame Connection Insights",
                "past_life": "Past Life Connection Glimpse"}

DISCLAIMER = ("Important: This SoulmateSketch report is created for entertainment, inspiration, and "
              "self-reflection purposes. It is not intended to provide professional advice, predict specific "
              "outcomes, or guarantee romantic results. All insights are generated through AI analysis of your "
              "preferences and should be considered as creative inspiration for your personal journey.")

BRAND = colors.HexColor("#E91E63")
TEXT = colors.HexColor("#2D2240")
MUTED = colors.HexColor("#666666")

# characters the base-14 fonts cannot draw
REPLACEMENTS = {
    "\u2013": "-",  # en dash
    "\u2014": "-",  # em dash
    "\u2212": "-",  # minus sign
    "\u00A0": " ",  # nbsp
    "\u2018": "'",
    "\u2019": "'",
    "\u201C": '"',
    "\u201D": '"',
    "\u2022": "*",  # bullet
    "\u2026": "...",
}


def _sanitize(text: str) -> str:
    for k, v in REPLACEMENTS.items():
        if k in text:
            text = text.replace(k, v)
    return text


def parse_sections(text: Optional[str]) -> Dict[str, str]:
    """Split generated text on lines that are exactly one of SECTION_HEADINGS.

    Lines before the first heading belong to Overview. A heading repeated later
    starts that section over. A body line that happens to equal a heading is
    taken as a heading too.
    """
    sections: Dict[str, str] = {}
    if not text:
        return sections
    current = "Overview"
    for line in text.splitlines():
        stripped = line.strip()
        if stripped in SECTION_HEADINGS:
            current = stripped
            sections[current] = ""
            continue
        if not stripped:
            continue
        sections[current] = f"{sections[current]}\n{stripped}" if sections.get(current) else stripped
    return sections


def aura_reading(quiz: QuizAnswers) -> str:
    colour = quiz.preferences.aura_palette or "warm golden"
    return (f"Your aura radiates in {colour} hues, creating a magnetic energy field that naturally attracts "
            "compatible souls. This luminous presence reflects your inner harmony and draws connections that "
            "resonate with your authentic self.\n"
            "Your soulmate will be drawn to this energetic signature, feeling an immediate sense of comfort and "
            "recognition when they encounter your presence. Your light amplifies theirs and theirs amplifies yours.\n"
            "Expect subtle signs of this compatibility: conversations that flow effortlessly, a sense of being "
            "truly seen, and a feeling of coming home when you are together.")


def twin_flame_reading(quiz: QuizAnswers) -> str:
    values = quiz.personality.values[:2]
    lines = ["Your twin flame connection works through mirroring: each of you reflects the other's greatest "
             "potential and the places still asking for growth. It will challenge you gently while giving deep "
             "spiritual fulfilment."]
    if values:
        lines.append(f"Your shared commitment to {' and '.join(values)} creates a foundation for mutual growth "
                     "and understanding.")
    lines.append("The intensity of this bond comes from the growth you experience together, not from drama. "
                 "Practise radical honesty and welcome what your differences teach you.")
    return "\n".join(lines)


def past_life_reading(quiz: QuizAnswers) -> str:
    values = quiz.personality.values[:2]
    lines = ["In a past life glimpse you appear as kindred spirits joined by a shared mission of love and "
             "service, a bond forged through challenges that strengthened your commitment to each other.",
             "The familiarity you will feel on meeting is that old recognition: your souls remembering each other "
             "and the purpose that once united you."]
    if values:
        lines.append(f"Your current values of {' and '.join(values)} were also central to that earlier lifetime.")
    lines.append("This lifetime offers the chance to finish what was left undone. Trust the moments of deja vu.")
    return "\n".join(lines)


ADDON_READINGS = {"aura": aura_reading, "twin_flame": twin_flame_reading, "past_life": past_life_reading}

Sections = List[Tuple[str, str]]


@dataclass
class ReportData:
    tier: str
    addons: List[str]
    user_name: Optional[str] = None
    location: Optional[str] = None
    analysis: Sections = field(default_factory=list)
    plus_content: Optional[Sections] = None
    premium_content: Optional[Sections] = None
    addon_content: Optional[Sections] = None
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def as_dict(self) -> dict:
        return asdict(self)


def build_report_data(quiz: QuizAnswers, text: str, tier: str, addons: List[str]) -> ReportData:
    sections = parse_sections(text)
    email = quiz.user.email or ""
    report = ReportData(tier=tier, addons=list(addons),
                        user_name=quiz.user.name or (email.split("@")[0] if email else None),
                        location=quiz.user.country)

    for heading, title, default in CORE_LAYOUT:
        body = sections.get(heading) or default
        if body:
            report.analysis.append((title, body))

    level = tier_level(tier)
    if level >= 1:
        report.plus_content = [(LOCATION_TITLE, astro.location_prediction(quiz))]
        report.plus_content += [(title, sections[h]) for h, title in PLUS_LAYOUT if sections.get(h)]
    if level >= 2:
        report.premium_content = [(title, sections[h]) for h, title in PREMIUM_LAYOUT if sections.get(h)]

    extras = []
    for addon in addons:
        if addon not in ADDON_READINGS:
            continue
        body = sections.get(ADDON_HEADINGS[addon]) or ADDON_READINGS[addon](quiz)
        extras.append((ADDON_TITLES[addon], body))
    report.addon_content = extras or None
    return report


def _styles():
    base = getSampleStyleSheet()
    return {
        "brand": ParagraphStyle("brand", parent=base["Title"], fontSize=32, leading=38, textColor=BRAND),
        "subtitle": ParagraphStyle("subtitle", parent=base["Normal"], fontSize=16, leading=20,
                                   alignment=TA_CENTER, textColor=MUTED),
        "title": ParagraphStyle("title", parent=base["Title"], fontSize=24, leading=30, textColor=TEXT),
        "center": ParagraphStyle("center", parent=base["Normal"], fontSize=14, leading=18,
                                 alignment=TA_CENTER, textColor=MUTED),
        "small": ParagraphStyle("small", parent=base["Normal"], fontSize=8, leading=10,
                                alignment=TA_CENTER, textColor=MUTED),
        "page": ParagraphStyle("page", parent=base["Heading1"], fontSize=20, leading=24, textColor=BRAND),
        "heading": ParagraphStyle("heading", parent=base["Heading2"], fontSize=14, leading=18,
                                  textColor=TEXT, spaceBefore=12),
        "body": ParagraphStyle("body", parent=base["BodyText"], fontSize=11, leading=15, textColor=TEXT),
        "disclaimer": ParagraphStyle("disclaimer", parent=base["Normal"], fontSize=9, leading=11, textColor=MUTED),
    }


def _p(text: str, style) -> Paragraph:
    return Paragraph(escape(_sanitize(text)), style)


class PdfAssembler:
    """Renders a `ReportData` to a LETTER-size PDF."""

    def render(self, report: ReportData, image_path: Optional[str], out_path: str) -> str:
        os.makedirs(os.path.dirname(os.path.abspath(out_path)), exist_ok=True)
        styles = _styles()
        story = self._cover(report, image_path, styles)
        story += self._page("Your Soulmate Analysis", report.analysis, styles)
        if report.plus_content:
            story += self._page("Enhanced Analysis (Plus)", report.plus_content, styles)
        if report.premium_content:
            story += self._page("Premium Spiritual Analysis", report.premium_content, styles)
        if report.addon_content:
            story += self._page("Special Spiritual Insights", report.addon_content, styles)
        story += [Spacer(1, 24), HRFlowable(width="100%", thickness=1, color=MUTED), Spacer(1, 6),
                  _p(DISCLAIMER, styles["disclaimer"]), Spacer(1, 4),
                  _p(f"© {date.today().year} SoulmateSketch. All rights reserved.", styles["small"])]

        doc = SimpleDocTemplate(out_path, pagesize=LETTER, leftMargin=60, rightMargin=60, topMargin=60,
                                bottomMargin=60, title="SoulmateSketch Report", author="SoulmateSketch")
        try:
            doc.build(story)
        except Exception as e:
            raise PdfRenderError(f"could not render {os.path.basename(out_path)}: {e}") from e
        if not os.path.exists(out_path) or os.path.getsize(out_path) == 0:
            raise PdfRenderError(f"empty PDF written to {out_path}")
        logger.info("PDF written: %s (%d bytes)", os.path.basename(out_path), os.path.getsize(out_path))
        return out_path

    def _cover(self, report: ReportData, image_path: Optional[str], styles) -> list:
        story = [Spacer(1, 40), _p("SoulmateSketch", styles["brand"]),
                 _p("Your Personalized Soulmate Report", styles["subtitle"]), Spacer(1, 30),
                 _p("Your Soulmate Sketch", styles["title"]),
                 _p(f"Prepared especially for {report.user_name or 'You'}", styles["center"]), Spacer(1, 30)]
        if image_path and os.path.exists(image_path):
            img = Image(image_path, width=300, height=300)
            img.hAlign = "CENTER"
            story += [img, Spacer(1, 30)]
        else:
            story.append(Spacer(1, 120))
        story += [_p(f"Generated on {date.today().strftime('%B %d, %Y')}", styles["center"]),
                  _p("This report is created for entertainment and inspiration purposes", styles["small"])]
        return story

    def _page(self, title: str, sections: Sections, styles) -> list:
        story = [PageBreak(), _p(title, styles["page"]),
                 HRFlowable(width="100%", thickness=2, color=BRAND, spaceAfter=8)]
        for heading, body in sections:
            story.append(_p(heading, styles["heading"]))
            for para in body.split("\n"):
                if para.strip():
                    story += [_p(para, styles["body"]), Spacer(1, 6)]
        return story
