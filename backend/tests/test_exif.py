import pytest

from moments_admin.services.exif import extract_exif, format_exposure


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (1 / 250, "1/250"),
        (0.5, "1/2"),
        (1, "1s"),
        (2.5, "2.5s"),
        (0.3, "0.3s"),
    ],
)
def test_format_exposure(seconds, expected):
    assert format_exposure(seconds) == expected


def test_extract_exif_from_non_image():
    assert extract_exif(b"definitely not a jpeg") is None
