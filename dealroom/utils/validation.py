"""Field validation shared by the deal room setters, full updates and drafts.

validate_deal_room_fields() collects every problem instead of stopping at
the first one; callers join the list into a single ValidationError.
Messages number list items from 1, the way the admin UI displays them.
"""

from __future__ import annotations

from urllib.parse import urlparse

from dealroom.models.deal_room import (
    BLURB_MAX_LENGTH,
    SUMMARY_MAX_LENGTH,
    VALID_IMAGE_MIME_TYPES,
)


def is_blank(value) -> bool:
    """True for None, non-strings and whitespace-only strings."""
    return not isinstance(value, str) or not value.strip()


def is_valid_url(url) -> bool:
    """Absolute URL with a scheme and a host (http://, https://, ftp://, ...)."""
    if not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and parsed.scheme.isalpha() and bool(parsed.netloc)


def is_valid_image_mime_type(mime_type) -> bool:
    return isinstance(mime_type, str) and mime_type.lower() in VALID_IMAGE_MIME_TYPES


def _is_non_negative_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


def validate_link_items(items, *, label: str, url_key: str, url_label: str) -> list[str]:
    """Validate an ordered link list (key info or external links).

    Args:
        items: The submitted list.
        label: Message prefix for one item, e.g. "Key info item".
        url_key: Item key holding the URL ("link" or "url").
        url_label: Name used in messages ("Link" or "URL").
    """
    errors = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            errors.append(f"{label} {index}: Must be an object")
            continue
        if is_blank(item.get("name")):
            errors.append(f"{label} {index}: Name is required")
        url = item.get(url_key)
        if is_blank(url):
            errors.append(f"{label} {index}: {url_label} is required")
        elif not is_valid_url(url):
            errors.append(f"{label} {index}: {url_label} must be a valid URL")
        if not _is_non_negative_number(item.get("order")):
            errors.append(f"{label} {index}: Order must be a non-negative number")
    return errors


def validate_key_info(items) -> list[str]:
    if not isinstance(items, list):
        return ["Key info must be an array"]
    return validate_link_items(items, label="Key info item", url_key="link", url_label="Link")


def validate_external_links(items) -> list[str]:
    if not isinstance(items, list):
        return ["External links must be an array"]
    return validate_link_items(items, label="External link", url_key="url", url_label="URL")


def validate_blurb(value) -> list[str]:
    if not isinstance(value, str):
        return ["Investment blurb must be a string"]
    if len(value) > BLURB_MAX_LENGTH:
        return [f"Investment blurb must be less than {BLURB_MAX_LENGTH} characters"]
    return []


def validate_summary(value) -> list[str]:
    if not isinstance(value, str):
        return ["Investment summary must be a string"]
    if len(value) > SUMMARY_MAX_LENGTH:
        return [f"Investment summary must be less than {SUMMARY_MAX_LENGTH:,} characters"]
    return []


def validate_showcase_photo(photo) -> list[str]:
    """Validate showcase photo metadata (not the bytes)."""
    if not isinstance(photo, dict):
        return ["Showcase photo must be an object"]
    errors = []
    if is_blank(photo.get("filename")):
        errors.append("Showcase photo filename is required")
    if is_blank(photo.get("originalName")):
        errors.append("Showcase photo original name is required")
    mime_type = photo.get("mimeType")
    if is_blank(mime_type):
        errors.append("Showcase photo MIME type is required")
    elif not is_valid_image_mime_type(mime_type):
        errors.append("Showcase photo must be a valid image format (JPEG, PNG, WebP)")
    size = photo.get("size")
    if not _is_non_negative_number(size) or size == 0:
        errors.append("Showcase photo size must be a positive number")
    if not photo.get("uploadedAt"):
        errors.append("Showcase photo upload date is required")
    return errors


def validate_deal_room_fields(data: dict) -> list[str]:
    """Validate whichever content fields are present in ``data``.

    Absent (or None) fields are not checked; partial updates and drafts
    only carry the sections being edited.
    """
    errors = []
    if data.get("investmentBlurb") is not None:
        errors.extend(validate_blurb(data["investmentBlurb"]))
    if data.get("investmentSummary") is not None:
        errors.extend(validate_summary(data["investmentSummary"]))
    if data.get("keyInfo") is not None:
        errors.extend(validate_key_info(data["keyInfo"]))
    if data.get("externalLinks") is not None:
        errors.extend(validate_external_links(data["externalLinks"]))
    if data.get("showcasePhoto") is not None:
        errors.extend(validate_showcase_photo(data["showcasePhoto"]))
    return errors
