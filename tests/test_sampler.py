import numpy as np
import pytest

from cubescan.frame import Frame
from cubescan.sampler import FaceletSampler, cluster_samples, edge_mask


def solid(h, w, rgb):
    return Frame(np.full((h, w, 3), rgb, dtype=np.uint8))


def split_frame(left=(255, 0, 0), right=(0, 0, 255), size=20):
    img = np.zeros((size, size, 3), dtype=np.uint8)
    img[:, :size // 2] = left
    img[:, size // 2:] = right
    return Frame(img)


def test_radius():
    assert FaceletSampler().radius(64) == 10
    assert FaceletSampler().radius(6) == 2
    assert FaceletSampler(radius_divisor=8).radius(64) == 8


def test_uniform_region_returns_its_color():
    assert FaceletSampler().sample(solid(50, 50, (12, 200, 40)), 25, 25, 30) == (12, 200, 40)


def test_off_frame_region_returns_none():
    sampler = FaceletSampler()
    frame = solid(50, 50, (255, 255, 255))
    assert sampler.sample(frame, 500, 500, 30) is None
    assert sampler.sample(frame, -40, 10, 30) is None


def test_partially_visible_region_uses_in_bounds_pixels():
    assert FaceletSampler().sample(solid(50, 50, (0, 0, 255)), 0, 49, 30) == (0, 0, 255)


def test_specular_spot_is_ignored():
    img = np.full((60, 60, 3), (255, 0, 0), dtype=np.uint8)
    img[29:32, 29:32] = (255, 255, 255)
    assert FaceletSampler().sample(Frame(img), 30, 30, 64) == (255, 0, 0)


def test_largest_cluster_wins():
    # window cols 8..12: two red columns, three blue columns
    assert FaceletSampler(reject_edges=False).sample(split_frame(), 10, 10, 12) == (0, 0, 255)


def test_falls_back_to_mean_without_dominant_cluster():
    sampler = FaceletSampler(reject_edges=False, min_share=0.9)
    assert sampler.sample(split_frame(), 10, 10, 12) == (102, 0, 153)


def test_edge_mask_marks_brightness_boundaries():
    mask = edge_mask(split_frame((0, 0, 0), (255, 255, 255), size=10), 0, 0, 10, 10, 30)
    assert mask.shape == (10, 10)
    assert mask[:, 4].all() and mask[:, 5].all()
    assert not mask[:, 0].any() and not mask[:, 9].any()


def test_edge_mask_uniform_is_empty():
    assert not edge_mask(solid(10, 10, (90, 90, 90)), 2, 2, 8, 8).any()


def test_edge_mask_off_frame():
    assert edge_mask(solid(10, 10, (90, 90, 90)), 20, 20, 30, 30).size == 0


def test_cluster_samples():
    clusters = cluster_samples(np.array([[0, 0, 0], [10, 0, 0], [200, 200, 200]]), 50)
    assert [cl['count'] for cl in clusters] == [2, 1]
    assert list(clusters[0]['center']) == [5, 0, 0]


def test_cluster_samples_joins_first_close_center():
    clusters = cluster_samples(np.array([[0, 0, 0], [60, 0, 0], [30, 0, 0]]), 50)
    assert [cl['count'] for cl in clusters] == [2, 1]
    assert list(clusters[0]['center']) == [15, 0, 0]
    assert list(clusters[1]['center']) == [60, 0, 0]


def test_cluster_samples_large_patch():
    patch = np.zeros((100, 100, 3), dtype=np.uint8)
    patch[:, :70] = (200, 30, 30)
    patch[:, 70:] = (30, 30, 200)
    clusters = cluster_samples(patch.reshape(-1, 3), 50)
    assert [cl['count'] for cl in clusters] == [7000, 3000]
    assert list(clusters[0]['center']) == [200, 30, 30]
    assert list(clusters[1]['sum']) == [90000, 90000, 600000]


def test_frame_rejects_bad_shapes():
    with pytest.raises(ValueError):
        Frame(np.zeros((4, 4), dtype=np.uint8))


def test_frame_from_bgr_swaps_channels():
    bgr = np.zeros((2, 2, 3), dtype=np.uint8)
    bgr[:, :] = (255, 0, 0)
    assert Frame.from_bgr(bgr).pixel(0, 0) == (0, 0, 255)


def test_frame_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Frame.load(tmp_path / "nope.png")
