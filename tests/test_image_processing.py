import numpy as np
from glyph_omr.image_processing import mask_image


def test_mask_image_thresholding(small_rgb_image):
    # Convert our fixture to BGR so grayscale==original
    # Threshold at 100: red(76)<100→255, green(150)>100→0, blue(29)<100→255, black(0)<100→255
    bin_img = mask_image(small_rgb_image[..., ::-1], threshold_value=100)
    expected = np.array([[255, 0], [255, 255]], dtype=np.uint8)
    assert np.array_equal(bin_img, expected)


def test_mask_image_dtype_and_shape(small_rgb_image):
    b = mask_image(small_rgb_image[..., ::-1], threshold_value=50)
    assert b.dtype == np.uint8
    assert b.shape == small_rgb_image.shape[:2]


def test_mask_image_grayscale_input():
    gray = np.array([[0, 200], [90, 255]], dtype=np.uint8)
    expected = np.array([[255, 0], [255, 0]], dtype=np.uint8)
    assert np.array_equal(mask_image(gray, 127), expected)
