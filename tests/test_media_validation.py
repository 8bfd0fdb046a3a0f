import base64
import io

import httpx
import pytest
from PIL import Image

from models.encoded_image import EncodedImage
from tests.conftest import make_png
from utils.errors import InputValidationError, InvalidResponseShape, NoImageReturned
from utils.media_validation import decode_image_payload, image_from_http_response, image_mime_type


class TestDecodeImagePayload:
    def test_data_url(self):
        png = make_png()
        assert decode_image_payload(png.to_data_url()) == png

    def test_bare_base64(self):
        png = make_png()
        decoded = decode_image_payload(png.to_base64())
        assert decoded.data == png.data
        assert decoded.mime_type == "image/png"

    def test_raw_bytes(self):
        png = make_png()
        assert decode_image_payload(png.data).data == png.data

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        with pytest.raises(InputValidationError):
            decode_image_payload(value, field_name="currentImage")

    def test_invalid_base64(self):
        with pytest.raises(InputValidationError):
            decode_image_payload("not*base64!")

    def test_non_image_data_url(self):
        with pytest.raises(InputValidationError):
            decode_image_payload("data:text/plain;base64,aGVsbG8=")

    def test_base64_of_non_image_is_rejected(self):
        with pytest.raises(InputValidationError):
            decode_image_payload(base64.b64encode(b"<html>oops</html>").decode())

    def test_image_data_url_with_non_image_bytes_is_rejected(self):
        with pytest.raises(InputValidationError):
            decode_image_payload("data:image/png;base64," + base64.b64encode(b"{\"error\": 1}").decode())


def _jpeg() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), (200, 10, 10)).save(buf, format="JPEG")
    return buf.getvalue()


def test_image_mime_type():
    assert image_mime_type(_jpeg()) == "image/jpeg"
    assert image_mime_type(make_png().data) == "image/png"
    assert image_mime_type(b"<html>rate limited</html>") is None
    assert image_mime_type(make_png().data[:20]) is None


class TestImageFromHttpResponse:
    def test_json_base64_body(self):
        png = make_png()
        response = httpx.Response(200, json={"imageUrl": png.to_data_url()})
        assert image_from_http_response(response) == png

    def test_binary_body(self):
        png = make_png()
        response = httpx.Response(200, content=png.data, headers={"content-type": "image/png"})
        assert image_from_http_response(response) == EncodedImage(png.data, "image/png")

    def test_octet_stream_is_sniffed(self):
        response = httpx.Response(
            200, content=_jpeg(), headers={"content-type": "application/octet-stream"}
        )
        assert image_from_http_response(response).mime_type == "image/jpeg"

    def test_json_without_image(self):
        response = httpx.Response(200, json={"error": None})
        with pytest.raises(NoImageReturned):
            image_from_http_response(response, provider="flux")

    def test_empty_body(self):
        with pytest.raises(NoImageReturned):
            image_from_http_response(httpx.Response(200, content=b""))

    def test_unexpected_content_type(self):
        response = httpx.Response(200, content=b"oops", headers={"content-type": "text/plain"})
        with pytest.raises(InvalidResponseShape):
            image_from_http_response(response)

    @pytest.mark.parametrize("content_type", ["application/octet-stream", "", "image/png"])
    def test_non_image_binary_body_is_rejected(self, content_type):
        headers = {"content-type": content_type} if content_type else {}
        response = httpx.Response(200, content=b"<html>rate limited</html>", headers=headers)
        with pytest.raises(InvalidResponseShape):
            image_from_http_response(response, provider="flux")

    def test_json_body_with_non_image_base64(self):
        response = httpx.Response(200, json={"image": base64.b64encode(b"not a picture").decode()})
        with pytest.raises(InvalidResponseShape):
            image_from_http_response(response, provider="flux")
