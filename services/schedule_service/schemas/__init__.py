"""Schedule Service schemas package."""

from services.schedule_service.schemas.main import (
    OccurrenceResponse,
    ScheduleTemplateCreate,
    ScheduleTemplateResponse,
    ScheduleTemplateUpdate,
    TemplateFields,
    TemplatePreviewResponse,
    TemplateSaveResponse,
)

__all__ = [
    "OccurrenceResponse",
    "ScheduleTemplateCreate",
    "ScheduleTemplateResponse",
    "ScheduleTemplateUpdate",
    "TemplateFields",
    "TemplatePreviewResponse",
    "TemplateSaveResponse",
]
