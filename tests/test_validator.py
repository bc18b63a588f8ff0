"""Tests for attachment field validation."""

from attachkit.application.validator import Validator
from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import FieldError
from attachkit.domain.options import AttachmentOptions


def _attachment(**kwargs):
    defaults = {"filename": "photo.jpg", "content_type": "image/jpeg", "size": 100}
    defaults.update(kwargs)
    return Attachment(**defaults)


class TestValidator:
    def test_valid_attachment(self):
        validator = Validator(AttachmentOptions.build(content_type="image"))

        assert validator.validate(_attachment()) == []

    def test_blank_fields(self):
        validator = Validator(AttachmentOptions.build())

        errors = validator.validate(Attachment())

        assert errors == [
            FieldError("size", "can't be blank"),
            FieldError("content_type", "can't be blank"),
            FieldError("filename", "can't be blank"),
        ]

    def test_size_bounds_are_inclusive(self):
        validator = Validator(AttachmentOptions.build(min_size=10, max_size=20))

        assert validator.validate(_attachment(size=10)) == []
        assert validator.validate(_attachment(size=20)) == []
        assert validator.validate(_attachment(size=9)) == [FieldError("size", "is not included in the list (10..20)")]
        assert validator.validate(_attachment(size=21)) == [FieldError("size", "is not included in the list (10..20)")]

    def test_empty_allow_list_accepts_everything(self):
        validator = Validator(AttachmentOptions.build())

        assert validator.validate(_attachment(content_type="application/x-anything")) == []

    def test_image_sentinel_accepts_legacy_aliases(self):
        validator = Validator(AttachmentOptions.build(content_type="image"))

        assert validator.validate(_attachment(content_type="image/pjpeg")) == []
        assert validator.validate(_attachment(content_type="text/plain")) == [
            FieldError("content_type", "is not included in the list")
        ]

    def test_allow_list_mixes_sentinel_and_explicit_types(self):
        validator = Validator(AttachmentOptions.build(content_type=["image", "application/pdf"]))

        assert validator.validate(_attachment(content_type="application/pdf")) == []
        assert validator.validate(_attachment(content_type="image/png")) == []

    def test_field_error_str(self):
        assert str(FieldError("size", "can't be blank")) == "size can't be blank"
