"""
Tests for multipart bodies.
"""

import re

import pytest

from mimecompose.conf import reset_settings
from mimecompose.enums import TransferEncoding
from mimecompose.formats.mime.body import MultiPart, MultiPartKind, SinglePart, make_boundary
from mimecompose.formats.rfc5322.headers import (
    ContentDisposition,
    ContentLocation,
    ContentTransferEncoding,
    ContentType,
    Headers,
    RawHeader,
)

OUTER = "F2mTKN843loAAAAA8porEdAjCKhArPxGeahYoZYSftse1GT/84tup+O0bs8eueVuAlMK"
INNER = "E912L4JH3loAAAAAFu/33Gx7PEoTMmhGaxG3FlbVMQHctj96q4nHvBM+7DTtXo/im8gh"

HTML = '<p>Текст <em>письма</em> в <a href="https://ru.wikipedia.org/wiki/Юникод">уникоде</a><p>'


def binary_part(content_type: str, body: str, *headers) -> SinglePart:
    """Build a binary part with extra headers between type and encoding."""
    builder = SinglePart.builder().header(ContentType.parse(content_type))
    for header in headers:
        builder.header(header)
    return builder.header(ContentTransferEncoding(TransferEncoding.BINARY)).body(body)


@pytest.fixture
def plain_part():
    """Plain text part."""
    return binary_part("text/plain; charset=utf8", "Текст письма в уникоде")


@pytest.fixture
def attachment_part():
    """Attached C source file."""
    return binary_part(
        "text/plain; charset=utf8",
        "int main() { return 0; }",
        ContentDisposition.attachment("example.c"),
    )


@pytest.fixture
def related_part():
    """HTML with an inline image."""
    return (
        MultiPart.related()
        .boundary(INNER)
        .singlepart(binary_part("text/html; charset=utf8", HTML))
        .singlepart(
            SinglePart.builder()
            .header(ContentType.parse("image/png"))
            .header(ContentLocation("/image.png"))
            .header(ContentTransferEncoding(TransferEncoding.BASE64))
            .body("1234567890" * 13)
        )
    )


class TestMultiPartFormat:
    """Tests for the immediate rendering of multiparts."""

    def test_mixed(self, plain_part, attachment_part):
        """Children are delimited by the boundary and closed after the last."""
        part = MultiPart.mixed().boundary(OUTER).part(plain_part).singlepart(attachment_part)
        assert part.as_string() == (
            f'Content-Type: multipart/mixed; boundary="{OUTER}"\r\n'
            "\r\n"
            f"--{OUTER}\r\n"
            "Content-Type: text/plain; charset=utf8\r\n"
            "Content-Transfer-Encoding: binary\r\n"
            "\r\n"
            "Текст письма в уникоде\r\n"
            f"--{OUTER}\r\n"
            "Content-Type: text/plain; charset=utf8\r\n"
            'Content-Disposition: attachment; filename="example.c"\r\n'
            "Content-Transfer-Encoding: binary\r\n"
            "\r\n"
            "int main() { return 0; }\r\n"
            f"--{OUTER}--\r\n"
        )

    def test_alternative(self, plain_part):
        """Alternative parts render the same way as mixed ones."""
        part = (
            MultiPart.alternative()
            .boundary(OUTER)
            .part(plain_part)
            .singlepart(binary_part("text/html; charset=utf8", HTML))
        )
        assert part.as_string() == (
            f'Content-Type: multipart/alternative; boundary="{OUTER}"\r\n'
            "\r\n"
            f"--{OUTER}\r\n"
            "Content-Type: text/plain; charset=utf8\r\n"
            "Content-Transfer-Encoding: binary\r\n"
            "\r\n"
            "Текст письма в уникоде\r\n"
            f"--{OUTER}\r\n"
            "Content-Type: text/html; charset=utf8\r\n"
            "Content-Transfer-Encoding: binary\r\n"
            "\r\n"
            f"{HTML}\r\n"
            f"--{OUTER}--\r\n"
        )

    def test_mixed_related(self, related_part, attachment_part):
        """Nested multiparts use their own boundary."""
        part = MultiPart.mixed().boundary(OUTER).multipart(related_part).singlepart(attachment_part)
        assert part.as_string() == (
            f'Content-Type: multipart/mixed; boundary="{OUTER}"\r\n'
            "\r\n"
            f"--{OUTER}\r\n"
            f'Content-Type: multipart/related; boundary="{INNER}"\r\n'
            "\r\n"
            f"--{INNER}\r\n"
            "Content-Type: text/html; charset=utf8\r\n"
            "Content-Transfer-Encoding: binary\r\n"
            "\r\n"
            f"{HTML}\r\n"
            f"--{INNER}\r\n"
            "Content-Type: image/png\r\n"
            "Content-Location: /image.png\r\n"
            "Content-Transfer-Encoding: base64\r\n"
            "\r\n"
            "MTIzNDU2Nzg5MDEyMzQ1Njc4OTAxMjM0NTY3ODkwMTIzNDU2Nzg5MDEyMzQ1Njc4OTAxMjM0NTY3\r\n"
            "ODkwMTIzNDU2Nzg5MDEyMzQ1Njc4OTAxMjM0NTY3ODkwMTIzNDU2Nzg5MDEyMzQ1Njc4OTAxMjM0\r\n"
            "NTY3ODkwMTIzNDU2Nzg5MA==\r\n"
            f"--{INNER}--\r\n"
            f"--{OUTER}\r\n"
            "Content-Type: text/plain; charset=utf8\r\n"
            'Content-Disposition: attachment; filename="example.c"\r\n'
            "Content-Transfer-Encoding: binary\r\n"
            "\r\n"
            "int main() { return 0; }\r\n"
            f"--{OUTER}--\r\n"
        )

    def test_no_children(self):
        """A multipart without children is closed right away."""
        part = MultiPart.mixed().boundary("simple").build()
        assert part.as_string() == (
            'Content-Type: multipart/mixed; boundary="simple"\r\n\r\n--simple--\r\n'
        )

    def test_streaming_child_refused(self):
        """Immediate rendering fails when a descendant streams."""
        part = MultiPart.mixed().singlepart(SinglePart.binary().body(iter([b"x"])))
        assert part.is_streaming
        with pytest.raises(TypeError):
            part.format()


class TestMultiPart:
    """Tests for multipart construction."""

    def test_kind(self):
        """The kind is read back from the content type."""
        assert MultiPart.mixed().build().kind is MultiPartKind.MIXED
        assert MultiPart.alternative().build().kind is MultiPartKind.ALTERNATIVE
        assert MultiPart.related().build().kind is MultiPartKind.RELATED

    def test_unknown_kind(self):
        """Other multipart subtypes are accepted without a kind."""
        headers = Headers([ContentType.parse('multipart/report; boundary="x"')])
        assert MultiPart(headers).kind is None

    def test_boundary_without_kind(self):
        """Setting a boundary alone gives a mixed multipart."""
        part = MultiPart.builder().boundary("abc").build()
        assert part.kind is MultiPartKind.MIXED
        assert part.boundary == "abc"

    def test_boundary_keeps_kind(self):
        """Setting a boundary keeps the current subtype."""
        part = MultiPart.related().boundary("abc").build()
        assert part.content_type.value() == 'multipart/related; boundary="abc"'

    def test_kind_keeps_boundary(self):
        """Switching the kind keeps a custom boundary."""
        part = MultiPart.builder().boundary("abc").kind(MultiPartKind.RELATED).build()
        assert part.content_type.value() == 'multipart/related; boundary="abc"'

    def test_raw_content_type(self):
        """A raw multipart content type is read for kind and boundary."""
        header = RawHeader("Content-Type", 'multipart/mixed; boundary="B"')
        part = MultiPart.builder().header(header).build()
        assert part.kind is MultiPartKind.MIXED
        assert part.boundary == "B"
        assert part.as_string() == 'Content-Type: multipart/mixed; boundary="B"\r\n\r\n--B--\r\n'

    def test_random_boundaries(self):
        """Each multipart gets its own random boundary."""
        first, second = MultiPart.mixed().build(), MultiPart.mixed().build()
        assert first.boundary != second.boundary
        assert len(first.boundary) == 68

    @pytest.mark.parametrize(
        "headers",
        [
            Headers(),
            Headers([ContentType.parse("text/plain")]),
            Headers([ContentType.parse("multipart/mixed")]),
        ],
    )
    def test_invalid_content_type(self, headers):
        """A multipart needs a multipart content type with a boundary."""
        with pytest.raises(ValueError):
            MultiPart(headers)

    def test_adding_returns_new(self, plain_part):
        """Adding a child leaves the original multipart unchanged."""
        empty = MultiPart.mixed().build()
        one = empty.part(plain_part)
        assert len(empty.parts) == 0
        assert one.parts == (plain_part,)
        assert one.boundary == empty.boundary

    def test_typed_children(self, plain_part):
        """Only parts of the right type are accepted."""
        with pytest.raises(TypeError):
            MultiPart.mixed().part("text")
        with pytest.raises(TypeError):
            MultiPart.mixed().multipart(plain_part)
        with pytest.raises(TypeError):
            MultiPart.mixed().build().singlepart(MultiPart.mixed().build())


class TestMultiPartKind:
    """Tests for MultiPartKind."""

    def test_to_content_type(self):
        """The content type carries the given boundary."""
        content_type = MultiPartKind.ALTERNATIVE.to_content_type("abc")
        assert content_type.value() == 'multipart/alternative; boundary="abc"'

    def test_to_content_type_random(self):
        """A random boundary is generated when none is given."""
        assert len(MultiPartKind.MIXED.to_content_type().get_param("boundary")) == 68

    @pytest.mark.parametrize(
        "raw,kind",
        [
            ('multipart/mixed; boundary="x"', MultiPartKind.MIXED),
            ("multipart/alternative", MultiPartKind.ALTERNATIVE),
            ("Multipart/Related", MultiPartKind.RELATED),
            ("multipart/signed", None),
            ("text/plain", None),
        ],
    )
    def test_from_content_type(self, raw, kind):
        """Kinds are inferred from the subtype, unknown ones give None."""
        assert MultiPartKind.from_content_type(ContentType.parse(raw)) is kind


class TestMakeBoundary:
    """Tests for the boundary generator."""

    def test_default(self):
        """Boundaries are 68 URL-safe characters."""
        boundary = make_boundary()
        assert re.match(r"^[A-Za-z0-9_-]{68}$", boundary)

    def test_length_from_settings(self, settings_env):
        """The length comes from the settings."""
        settings_env.setenv("MIMECOMPOSE_BOUNDARY_LENGTH", "20")
        reset_settings()
        assert len(make_boundary()) == 20

    def test_explicit_length(self):
        """An explicit length wins."""
        assert len(make_boundary(10)) == 10
