"""
Seam for the crop-photo advisor.

The survey core never depends on analysis succeeding: whatever the analyzer
does, ``analyze_crop_image`` returns text, falling back to a fixed notice.
No concrete (networked) analyzer ships with the application.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from .cv_utils import split_data_uri

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "無法完成 AI 分析，請手動輸入觀察結果。"
DEFAULT_CROP = "作物"


class ImageAnalyzer(Protocol):
    def analyze(self, image_b64: str, mime_type: str, prompt: str) -> Optional[str]: ...


def build_prompt(crop_type: str) -> str:
    crop = (crop_type or "").strip() or DEFAULT_CROP
    return (
        f"你是一位專業的農業專家。請分析這張{crop}的照片。\n"
        "1. 辨識照片中的作物狀態。\n"
        "2. 檢查是否有病蟲害或缺水的跡象。\n"
        "3. 提供 3-5 句專業的現勘建議。\n"
        "請用繁體中文回答，語氣要專業且易懂。"
    )


def analyze_crop_image(analyzer: Optional[ImageAnalyzer], image_data_uri: str, crop_type: str = "") -> str:
    if analyzer is None:
        return FALLBACK_TEXT
    try:
        mime, payload = split_data_uri(image_data_uri)
        text = analyzer.analyze(payload, mime, build_prompt(crop_type))
    except Exception:
        logger.exception("Image analysis failed")
        return FALLBACK_TEXT
    if not text or not str(text).strip():
        return FALLBACK_TEXT
    return str(text)
