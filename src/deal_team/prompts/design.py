"""
Design Director prompts: concept image, deliverable outline, slide render.
"""

from ..models.deal import DeliverableType, Slide

CONCEPT_IMAGE_PROMPT_TEMPLATE = (
    'A professional, modern, corporate logo for: {subject}. Minimalist, high fidelity, '
    'white on dark background. Brand palette: black and gold.'
)

DELIVERABLE_OUTLINE_PROMPT_TEMPLATE = """Act as an Investment Banking Associate at {fund_name}.
Create a slide outline for a "{deliverable_type}" document for "{company_name}".

Deal context:
- Sector: {sector}
- LTM Revenue ${revenue}M, EBITDA ${ebitda}M
- Recommendation: {recommendation}
- Executive Summary: {executive_summary}

REQUIREMENTS:
- Max {slide_limit} slides.
- Slide 1 must be the Title Slide.
- Visual Directive: describe a specific chart (e.g. "Waterfall chart of synergies",
  "Bar chart of revenue growth").

Return a JSON object with a "slides" array."""

SLIDE_DESIGN_PROMPT_TEMPLATE = """ROLE: Expert presentation designer for {fund_name}.
TASK: Create a high-fidelity 16:9 DIGITAL SLIDE EXPORT.

Subject: {company_name} - {slide_title}
Key Points: {content_points}
Visual Instructions: {visual_directive}

STYLE:
- Black, gold and white palette. Ultra-modern.
- Format: digital slide (NOT a photo of a screen).
- No third-party firm names or logos.
- Clean, professional charts."""


def build_concept_image_prompt(subject: str) -> str:
    return CONCEPT_IMAGE_PROMPT_TEMPLATE.format(subject=subject)


def build_deliverable_outline_prompt(
    company_name: str,
    deliverable_type: DeliverableType,
    fund_name: str,
    sector: str = '',
    revenue: float = 0,
    ebitda: float = 0,
    recommendation: str = 'HOLD',
    executive_summary: str = '',
) -> str:
    return DELIVERABLE_OUTLINE_PROMPT_TEMPLATE.format(
        fund_name=fund_name,
        deliverable_type=deliverable_type.value,
        company_name=company_name,
        sector=sector,
        revenue=revenue,
        ebitda=ebitda,
        recommendation=recommendation,
        executive_summary=executive_summary,
        slide_limit=deliverable_type.slide_limit,
    )


def build_slide_design_prompt(slide: Slide, company_name: str, fund_name: str) -> str:
    return SLIDE_DESIGN_PROMPT_TEMPLATE.format(
        fund_name=fund_name,
        company_name=company_name,
        slide_title=slide.title,
        content_points='; '.join(str(p) for p in slide.content_points),
        visual_directive=slide.visual_directive,
    )
