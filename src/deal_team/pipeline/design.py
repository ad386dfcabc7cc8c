"""
Design service: concept images, deliverable outlines and slide renders.

Image generation is best effort. A permission or quota failure on the
primary image model is retried once on the fallback model without the size
hint; any other failure, or a failed fallback, yields None.
"""

import structlog

from ..clients.base import GenerateConfig, ImageConfig, ModelClient, ModelResponse
from ..config import config
from ..errors import DesignError, is_permission_or_quota_error
from ..models.deal import DealRecord, DeliverableType, Slide
from ..models.extraction import SlideOutline, response_schema
from ..prompts.design import (
    build_concept_image_prompt,
    build_deliverable_outline_prompt,
    build_slide_design_prompt,
)
from .normalizer import normalize_slides
from .sanitizer import extract_json

logger = structlog.get_logger(__name__)

# Size hint sent to the primary image model only.
PRIMARY_SIZE_HINT = '1K'


def _image_uri(response: ModelResponse) -> str | None:
    for image in response.images:
        if image.data:
            return f'data:image/png;base64,{image.data}'
    return None


class DesignStudio:
    """Design Director calls."""

    def __init__(
        self,
        client: ModelClient,
        model: str | None = None,
        image_model: str | None = None,
        fallback_image_model: str | None = None,
    ):
        self.client = client
        self.model = model or config.FAST_MODEL
        self.image_model = image_model or config.IMAGE_MODEL
        self.fallback_image_model = fallback_image_model or config.IMAGE_FALLBACK_MODEL

    async def _render_image(self, prompt: str, aspect_ratio: str) -> str | None:
        """
        Render one image as a PNG data URI.

        Returns:
            ``data:image/png;base64,...`` or None when no image was produced
        """
        log = logger.bind(model=self.image_model, aspect_ratio=aspect_ratio)
        try:
            response = await self.client.generate(
                self.image_model,
                prompt,
                GenerateConfig(
                    image_config=ImageConfig(aspect_ratio=aspect_ratio, size_hint=PRIMARY_SIZE_HINT)
                ),
            )
        except Exception as exc:
            log.warning('design.primary_image_failed', error=str(exc))
            if not is_permission_or_quota_error(exc):
                return None

            try:
                response = await self.client.generate(
                    self.fallback_image_model,
                    prompt,
                    GenerateConfig(image_config=ImageConfig(aspect_ratio=aspect_ratio)),
                )
            except Exception as fallback_exc:
                log.error(
                    'design.fallback_image_failed',
                    fallback_model=self.fallback_image_model,
                    error=str(fallback_exc),
                )
                return None
            log.info('design.fallback_image_used', fallback_model=self.fallback_image_model)

        return _image_uri(response)

    async def generate_concept_image(self, subject: str) -> str | None:
        """Square logo concept for the target. Never raises."""
        return await self._render_image(build_concept_image_prompt(subject), '1:1')

    async def generate_deliverable_content(
        self,
        record: DealRecord,
        deliverable_type: DeliverableType,
        fund_name: str = 'the fund',
    ) -> list[Slide]:
        """
        Draft the slide outline for a deliverable.

        At most ``deliverable_type.slide_limit`` slides are kept.

        Raises:
            DesignError: Model call failed
            JSONParseError: Response could not be parsed even after repair
        """
        prompt = build_deliverable_outline_prompt(
            record.company_name,
            deliverable_type,
            fund_name,
            sector=record.sector,
            revenue=record.revenue,
            ebitda=record.ebitda,
            recommendation=record.memo.investment_recommendation,
            executive_summary=record.memo.executive_summary,
        )
        try:
            response = await self.client.generate(
                self.model,
                prompt,
                GenerateConfig(
                    response_schema=response_schema(SlideOutline),
                    schema_name='slide_outline',
                ),
            )
        except Exception as exc:
            raise DesignError(
                f'Deliverable Content Failed: {exc}',
                context={'type': deliverable_type.value},
            ) from exc

        slides = normalize_slides(extract_json(response.text or '[]'))
        return slides[: deliverable_type.slide_limit]

    async def generate_slide_design(
        self,
        slide: Slide,
        company_name: str,
        fund_name: str = 'the fund',
    ) -> str | None:
        """16:9 render of one slide. Never raises."""
        return await self._render_image(
            build_slide_design_prompt(slide, company_name, fund_name),
            '16:9',
        )
