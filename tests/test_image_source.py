import cv2
import numpy as np
import pytest

from gauge_reader.services import load_image, rotate_image


def _gradient(width=40, height=20):
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :, 2] = np.arange(width, dtype=np.uint8)[None, :]
    return image


def test_load_image_reads_png(tmp_path):
    path = tmp_path / "scale.png"
    assert cv2.imwrite(str(path), _gradient())

    frame = load_image(path)

    assert (frame.width, frame.height) == (40, 20)
    assert frame.source == f"image:{path}"
    assert frame.frame_id > 0
    np.testing.assert_array_equal(frame.image, _gradient())


def test_load_image_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "missing.jpg")


def test_load_image_unsupported_type(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("not an image")
    with pytest.raises(ValueError, match="Unsupported image type"):
        load_image(path)


@pytest.mark.parametrize("rotation, shape", [(0, (20, 40, 3)), (90, (40, 20, 3)), (180, (20, 40, 3)), (270, (40, 20, 3)), (-90, (40, 20, 3))])
def test_rotate_image_shapes(rotation, shape):
    assert rotate_image(_gradient(), rotation).shape == shape


def test_rotate_image_is_clockwise():
    image = _gradient()
    rotated = rotate_image(image, 90)
    # Left column moves to the top, right column to the bottom.
    assert (rotated[0, :, 2] == image[0, 0, 2]).all()
    assert (rotated[-1, :, 2] == image[0, -1, 2]).all()


def test_rotate_image_rejects_odd_angles():
    with pytest.raises(ValueError, match="multiple of 90"):
        rotate_image(_gradient(), 30)
