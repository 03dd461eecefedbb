from page_translate.cache import ResultCache
from page_translate.config import Settings, SettingsStore
from page_translate.controller import PipelineController
from page_translate.page import HeadlessPage, ImageElement
from page_translate.pipeline import ImagePipeline, PipelineContext
from page_translate.visibility import VisibilityTracker

__all__ = [
    "HeadlessPage",
    "ImageElement",
    "ImagePipeline",
    "PipelineContext",
    "PipelineController",
    "ResultCache",
    "Settings",
    "SettingsStore",
    "VisibilityTracker",
]
