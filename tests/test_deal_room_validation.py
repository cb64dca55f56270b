"""Tests for deal room field validation.

Coverage:
  1. URL and image MIME type helpers
  2. Blurb / summary length limits and their exact messages
  3. Key info and external link item rules, numbered from 1
  4. Showcase photo metadata
  5. Only fields present in the payload are checked
"""

import pytest

from dealroom.utils.validation import (
    is_valid_image_mime_type,
    is_valid_url,
    validate_deal_room_fields,
)


def _key_item(name="Deck", link="https://example.com/deck.pdf", order=0):
    return {"name": name, "link": link, "order": order}


def _photo(**overrides):
    photo = {
        "filename": "showcase_1_abc.png",
        "originalName": "hero.png",
        "mimeType": "image/png",
        "size": 2048,
        "uploadedAt": "2026-10-19T09:00:00+00:00",
    }
    photo.update(overrides)
    return photo


class TestUrlHelper:

    @pytest.mark.parametrize("url", [
        "https://example.com",
        "http://example.com/path?q=1",
        "ftp://files.example.com/teaser.pdf",
    ])
    def test_accepts_absolute_urls(self, url):
        assert is_valid_url(url)

    @pytest.mark.parametrize("url", ["example.com", "not a url", "http://", "", None, 42])
    def test_rejects_everything_else(self, url):
        assert not is_valid_url(url)


class TestMimeTypeHelper:

    def test_allowed_types_case_insensitive(self):
        assert is_valid_image_mime_type("image/jpeg")
        assert is_valid_image_mime_type("image/jpg")
        assert is_valid_image_mime_type("IMAGE/PNG")
        assert is_valid_image_mime_type("image/webp")

    def test_rejects_gif_and_non_images(self):
        assert not is_valid_image_mime_type("image/gif")
        assert not is_valid_image_mime_type("application/pdf")
        assert not is_valid_image_mime_type(None)


class TestTextLimits:

    def test_empty_payload_is_valid(self):
        assert validate_deal_room_fields({}) == []

    def test_blurb_at_limit_is_valid(self):
        assert validate_deal_room_fields({"investmentBlurb": "x" * 500}) == []

    def test_blurb_over_limit(self):
        errors = validate_deal_room_fields({"investmentBlurb": "x" * 501})
        assert errors == ["Investment blurb must be less than 500 characters"]

    def test_summary_over_limit(self):
        errors = validate_deal_room_fields({"investmentSummary": "x" * 10_001})
        assert errors == ["Investment summary must be less than 10,000 characters"]

    def test_none_fields_are_skipped(self):
        assert validate_deal_room_fields({"investmentBlurb": None, "keyInfo": None}) == []


class TestLinkItems:

    def test_valid_key_info(self):
        items = [_key_item(), _key_item(name="Model", order=1)]
        assert validate_deal_room_fields({"keyInfo": items}) == []

    def test_second_item_with_bad_link(self):
        items = [_key_item(), _key_item(name="Model", link="nope", order=1)]
        errors = validate_deal_room_fields({"keyInfo": items})
        assert errors == ["Key info item 2: Link must be a valid URL"]

    def test_reports_every_problem_of_an_item(self):
        errors = validate_deal_room_fields({"keyInfo": [{"name": " ", "link": "", "order": -1}]})
        assert errors == [
            "Key info item 1: Name is required",
            "Key info item 1: Link is required",
            "Key info item 1: Order must be a non-negative number",
        ]

    def test_boolean_order_is_rejected(self):
        errors = validate_deal_room_fields({"keyInfo": [_key_item(order=True)]})
        assert errors == ["Key info item 1: Order must be a non-negative number"]

    def test_fractional_order_is_accepted(self):
        assert validate_deal_room_fields({"keyInfo": [_key_item(order=1.5)]}) == []

    def test_external_link_uses_url_key(self):
        errors = validate_deal_room_fields({"externalLinks": [{"name": "Site", "order": 0}]})
        assert errors == ["External link 1: URL is required"]

    def test_external_link_invalid_url(self):
        errors = validate_deal_room_fields(
            {"externalLinks": [{"name": "Site", "url": "www.example.com", "order": 0}]}
        )
        assert errors == ["External link 1: URL must be a valid URL"]

    def test_list_fields_must_be_arrays(self):
        errors = validate_deal_room_fields({"keyInfo": {"name": "x"}, "externalLinks": "x"})
        assert errors == ["Key info must be an array", "External links must be an array"]


class TestShowcasePhotoMetadata:

    def test_valid_photo(self):
        assert validate_deal_room_fields({"showcasePhoto": _photo()}) == []

    def test_gif_rejected(self):
        errors = validate_deal_room_fields({"showcasePhoto": _photo(mimeType="image/gif")})
        assert errors == ["Showcase photo must be a valid image format (JPEG, PNG, WebP)"]

    def test_zero_size_rejected(self):
        errors = validate_deal_room_fields({"showcasePhoto": _photo(size=0)})
        assert errors == ["Showcase photo size must be a positive number"]

    def test_errors_from_several_fields_are_collected(self):
        errors = validate_deal_room_fields({
            "investmentBlurb": "x" * 501,
            "showcasePhoto": _photo(filename=""),
        })
        assert len(errors) == 2
