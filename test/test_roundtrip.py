import numpy as np
from spectral.forward import ForwardSpectralTransform, forward_transform
from spectral.inverse import InverseSpectralTransform, inverse_transform
from spectral.metadata import extract_metadata
from spectral.options import ForwardOptions, InverseOptions

LOSSLESS = ForwardOptions(enhance_phase_contrast=False)

def _random_rgba(h, w, seed=0, alpha=1.0):
    rng = np.random.default_rng(seed)
    img = rng.random((h, w, 4)).astype(np.float32)
    if alpha is not None:
        img[..., 3] = alpha
    return img

def _mae(a, b):
    return float(np.mean(np.abs(a.astype(np.float64) - b.astype(np.float64))))

def test_roundtrip_with_metadata_is_accurate():
    img = _random_rgba(48, 64)
    pair, meta = forward_transform(img, LOSSLESS)
    out = inverse_transform(pair, meta)
    assert out.shape == img.shape
    assert _mae(out[..., :3], img[..., :3]) < 1e-3
    assert np.all(out[..., 3] == 1.0)

def test_roundtrip_without_metadata_is_close_but_worse():
    img = _random_rgba(48, 64, seed=5)
    pair, meta = forward_transform(img, LOSSLESS)
    with_meta = _mae(inverse_transform(pair, meta)[..., :3], img[..., :3])
    heuristic = inverse_transform(pair, None, InverseOptions(assumed_phase_enhanced=False))
    without_meta = _mae(heuristic[..., :3], img[..., :3])
    assert without_meta < 0.05
    assert with_meta <= without_meta

def test_odd_size_roundtrip_uncropped_is_exact():
    img = _random_rgba(7, 9, seed=2)
    pair, meta = forward_transform(img, ForwardOptions(enhance_phase_contrast=False, crop_spectrum=False))
    assert pair.shape == (8, 9, 4)
    out = inverse_transform(pair, meta)
    assert out.shape == (7, 9, 4)
    assert _mae(out[..., :3], img[..., :3]) < 1e-3

def test_odd_size_roundtrip_cropped_recovers_mirrored_bins():
    img = _random_rgba(7, 9, seed=4)
    pair, meta = forward_transform(img, LOSSLESS)
    assert pair.shape == (7, 9, 4)
    out = inverse_transform(pair, meta)
    assert out.shape == (7, 9, 4)
    assert _mae(out[..., :3], img[..., :3]) < 1e-3

def test_cropped_roundtrip_with_unrecoverable_bins_is_bounded():
    # 7x11 pads to 8x12; one conjugate pair is cropped together with its mirror
    img = _random_rgba(7, 11, seed=4)
    pair, meta = forward_transform(img, LOSSLESS)
    out = inverse_transform(pair, meta)
    assert out.shape == (7, 11, 4)
    assert _mae(out[..., :3], img[..., :3]) < 0.1
    uncropped, uncropped_meta = forward_transform(img, ForwardOptions(enhance_phase_contrast=False, crop_spectrum=False))
    assert _mae(inverse_transform(uncropped, uncropped_meta)[..., :3], img[..., :3]) < 1e-3

def test_raw_mode_roundtrip():
    img = _random_rgba(32, 40, seed=7)
    for log in (True, False):
        opts = ForwardOptions(enhance_phase_contrast=False, magnitude_output="raw", apply_log_compression=log)
        pair, meta = forward_transform(img, opts)
        out = inverse_transform(pair, meta)
        assert _mae(out[..., :3], img[..., :3]) < 1e-3

def test_preview_gamma_is_inverted():
    img = _random_rgba(32, 32, seed=8)
    pair, meta = forward_transform(img, ForwardOptions(enhance_phase_contrast=False, preview_gamma=0.7))
    out = inverse_transform(pair, meta)
    assert _mae(out[..., :3], img[..., :3]) < 1e-3

def test_uncentered_roundtrip():
    img = _random_rgba(30, 36, seed=9)
    pair, meta = forward_transform(img, ForwardOptions(enhance_phase_contrast=False, center_zero_frequency=False))
    out = inverse_transform(pair, meta)
    assert _mae(out[..., :3], img[..., :3]) < 1e-3

def test_fast_polar_roundtrip():
    img = _random_rgba(48, 64, seed=3)
    pair, meta = forward_transform(img, LOSSLESS)
    out = inverse_transform(pair, meta, InverseOptions(polar_method="fast"))
    assert _mae(out[..., :3], img[..., :3]) < 1e-3

def test_windowed_roundtrip_interior():
    img = _random_rgba(48, 64, seed=6)
    pair, meta = forward_transform(img, ForwardOptions(enhance_phase_contrast=False, apply_window=True))
    out = inverse_transform(pair, meta)
    inner = (slice(4, -4), slice(4, -4), slice(0, 3))
    assert np.max(np.abs(out[inner] - img[inner])) < 1e-2

def test_alpha_channel_roundtrip():
    img = _random_rgba(32, 32, seed=10, alpha=None)
    opts = ForwardOptions(enhance_phase_contrast=False, transform_alpha_channel=True)
    pair, meta = forward_transform(img, opts)
    out = inverse_transform(pair, meta)
    assert _mae(out[..., 3], img[..., 3]) < 1e-3

def test_default_options_give_plausible_image():
    y, x = np.mgrid[0:40, 0:56]
    img = np.zeros((40, 56, 4), dtype=np.float32)
    img[..., 0] = x / 55.0
    img[..., 1] = y / 39.0
    img[..., 2] = 0.5
    img[..., 3] = 1.0
    pair, meta = forward_transform(img)
    out = inverse_transform(pair, meta)
    assert out.shape == img.shape
    assert np.all(np.isfinite(out))
    assert out.min() >= 0.0 and out.max() <= 1.0

def test_pipeline_side_channel_roundtrip_is_idempotent():
    img = _random_rgba(32, 48, seed=11)
    channel = {}
    forward = ForwardSpectralTransform(LOSSLESS)
    inverse = InverseSpectralTransform()
    pair, _ = forward.process(img, channel)
    first = inverse.process(pair.magnitude, pair.phase, channel)
    snapshot = extract_metadata(channel)
    # re-evaluating the graph leaves the side channel and the result unchanged
    pair2, _ = forward.process(img, channel)
    second = inverse.process(pair2.magnitude, pair2.phase, channel)
    assert extract_metadata(channel) == snapshot
    assert np.array_equal(first, second)
    assert _mae(first[..., :3], img[..., :3]) < 1e-3
