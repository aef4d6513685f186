"""Localized strings for apply summaries and change descriptions."""

from typing import Literal

Language = Literal["en", "zh"]

SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "zh")

_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "no_changes": "No changes applied",
        "summary": "Applied {total} change(s): {updated} updated, {added} added, {deleted} deleted",
        "updated": 'Updated {block_id}: "{preview}"',
        "added": 'Added {block_type} after {anchor}: "{preview}"',
        "added_start": 'Added {block_type} at start: "{preview}"',
        "deleted": 'Deleted {block_id}: "{preview}"',
        "reason": " ({reason})",
    },
    "zh": {
        "no_changes": "沒有套用任何修改",
        "summary": "已套用 {total} 項修改：更新 {updated} 項、新增 {added} 項、刪除 {deleted} 項",
        "updated": "已更新 {block_id}：「{preview}」",
        "added": "已在 {anchor} 之後新增{block_type}：「{preview}」",
        "added_start": "已在開頭新增{block_type}：「{preview}」",
        "deleted": "已刪除 {block_id}：「{preview}」",
        "reason": "（{reason}）",
    },
}

_BLOCK_TYPE_NAMES: dict[str, dict[str, str]] = {
    "en": {"heading": "heading", "paragraph": "paragraph", "list-item": "list item", "code": "code block"},
    "zh": {"heading": "標題", "paragraph": "段落", "list-item": "列表項", "code": "程式碼區塊"},
}


def normalize_language(lang: str | None) -> Language:
    """Map any language tag to a supported one (unknown tags fall back to English)."""
    if lang and lang.lower().startswith("zh"):
        return "zh"
    return "en"


def message(lang: str, key: str, **values: object) -> str:
    """Format a localized message."""
    return _MESSAGES[normalize_language(lang)][key].format(**values)


def block_type_name(lang: str, block_type: str) -> str:
    return _BLOCK_TYPE_NAMES[normalize_language(lang)].get(block_type, block_type)
