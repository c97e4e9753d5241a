"""Unit tests for the identity verification heuristics."""

import base64

import pytest

from safetrade.server.services.identity import (
    MIN_ID_IMAGE_LENGTH,
    MIN_PHOTO_LENGTH,
    check_government_id,
    compare_faces,
    decode_image,
    detect_face,
    liveness_score,
    validate_image,
    verify_id_document,
    verify_photo,
)

JPEG_PREFIX = "data:image/jpeg;base64,"
SELFIE_BYTES = b"\xff\xd8\xff\xe1" + bytes(range(256)) * 80


def data_url(payload: bytes, prefix: str = JPEG_PREFIX) -> str:
    return prefix + base64.b64encode(payload).decode()


class TestValidateImage:
    def test_accepts_data_url(self):
        assert validate_image(JPEG_PREFIX + "A" * MIN_PHOTO_LENGTH, MIN_PHOTO_LENGTH) is True

    @pytest.mark.parametrize(
        "image", [None, "", "https://example.com/photo.jpg" + "A" * 6000, JPEG_PREFIX + "A" * 100]
    )
    def test_rejects(self, image):
        assert validate_image(image, MIN_ID_IMAGE_LENGTH) is False


class TestDecodeImage:
    def test_strips_header_and_restores_padding(self):
        encoded = JPEG_PREFIX + base64.b64encode(b"motorcycle").decode().rstrip("=")
        assert decode_image(encoded) == b"motorcycle"

    def test_ignores_stray_characters(self):
        encoded = JPEG_PREFIX + "bW90\nb3Jj\neWNsZQ=="
        assert decode_image(encoded) == b"motorcycle"


class TestIdDocument:
    def test_good_document(self):
        result = verify_id_document(data_url(bytes(6000)))
        assert result.verified is True
        assert result.score == 100
        assert result.document_type == "drivers_license"
        assert all(result.checks.values())

    def test_too_small(self):
        result = verify_id_document(data_url(bytes(1000)))
        assert result.verified is False
        assert result.score == 20
        assert result.error == "Image too small to be a valid ID document"

    def test_unsupported_format(self):
        result = verify_id_document(data_url(bytes(6000), prefix="data:image/gif;base64,"))
        assert result.verified is False
        assert result.score == 80
        assert result.error == "ID verification failed. Issues: validFormat"


class TestFaceDetection:
    def test_photo_like_bytes(self):
        face = detect_face(SELFIE_BYTES)
        assert face.detected is True
        assert face.confidence == pytest.approx(0.7)
        assert face.reason is None

    def test_plain_bytes(self):
        face = detect_face(bytes(3000))
        assert face.detected is False
        assert face.reason.startswith("Face not detected: image too simple")
        assert "missing photographic markers" in face.reason


class TestPhoto:
    def test_good_photo(self):
        result = verify_photo(data_url(SELFIE_BYTES))
        assert result.verified is True
        assert result.score == 100

    def test_too_small(self):
        result = verify_photo(data_url(bytes(1500)))
        assert result.verified is False
        assert result.score == 15
        assert result.error == "Photo too small - please take a clear photo of your face"

    def test_no_face(self):
        result = verify_photo(data_url(bytes(3000)))
        assert result.verified is False
        assert result.score == 20
        assert result.error.startswith("No face detected in photo.")


class TestCompareFaces:
    def test_similarity_is_stable(self):
        first = compare_faces("id-image", "photo-image")
        second = compare_faces("id-image", "photo-image")
        assert first == second
        assert 85 <= first.similarity <= 95
        assert first.match is True


class TestCheckGovernmentId:
    def test_clear_document(self):
        result = check_government_id(data_url(bytes(range(256)) * 160))
        assert result.verified is True
        assert result.score == 100
        assert result.error is None

    def test_short_document_still_passes_on_remaining_checks(self):
        result = check_government_id(data_url(bytes(range(256)) * 40))
        assert result.checks["isValidFormat"] is False
        assert result.score == 83
        assert result.verified is True

    def test_text_is_not_a_document(self):
        result = check_government_id("not-a-document")
        assert result.verified is False
        assert result.score == 50
        assert result.error == (
            "Government ID verification failed. Issues: isValidFormat, hasProperDimensions, isNotBlurry"
        )


class TestLivenessScore:
    @pytest.mark.parametrize("image", ["plain text", "https://example.com/selfie.jpg"])
    def test_not_a_data_url(self, image):
        assert liveness_score(image) == 0

    def test_payload_too_small(self):
        assert liveness_score(data_url(bytes(300))) == 20

    def test_score_bands(self):
        assert 80 <= liveness_score(data_url(bytes(range(256)) * 160)) <= 100
        assert 70 <= liveness_score(data_url(bytes(range(256)) * 160, "data:image/gif;base64,")) <= 90
        assert 50 <= liveness_score(data_url(bytes(range(256)) * 4)) <= 70

    def test_stable_for_the_same_capture(self):
        capture = data_url(bytes(range(256)) * 20)
        assert liveness_score(capture) == liveness_score(capture)
