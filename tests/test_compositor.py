from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from pyplace.compositor import Compositor, compute_bounds
from pyplace.exceptions import PlaceComposeFailedError
from pyplace.models.artifacts import TilePlacement
from pyplace.storage import ArtifactStore

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
CLEAR = (0, 0, 0, 0)


def _tile(path: Path, index: int, dx: float, dy: float, *, color=RED, size=(4, 4)) -> TilePlacement:
    Image.new("RGBA", size, color).save(path, format="PNG")
    return TilePlacement(image_path=path, index=index, dx=dx, dy=dy)


def test_compute_bounds_includes_origin() -> None:
    assert compute_bounds([(0, 0, 10, 10), (10, 0, 10, 10)]) == (0, 0, 20, 10)
    assert compute_bounds([(5, 5, 2, 2)]) == (0, 0, 7, 7)
    assert compute_bounds([(-3, 0, 2, 2), (0, 0, 2, 2)]) == (-3, 0, 5, 2)


@pytest.mark.asyncio
async def test_compose_places_tiles_at_offsets(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)
    tiles = [
        _tile(tmp_path / "a.png", 0, 0, 0, color=RED),
        _tile(tmp_path / "b.png", 1, 4, 0, color=BLUE),
    ]

    ref = await Compositor(store).compose(tiles, 1690000000000)

    assert ref.path == store.composite_path(1690000000000)
    assert (ref.width, ref.height, ref.tile_count) == (8, 4, 2)
    with Image.open(ref.path) as img:
        assert img.size == (8, 4)
        assert img.getpixel((0, 0)) == RED
        assert img.getpixel((3, 3)) == RED
        assert img.getpixel((4, 0)) == BLUE
        assert img.getpixel((7, 3)) == BLUE


def test_render_truncates_fractional_offsets_and_keeps_gaps_transparent(tmp_path: Path) -> None:
    tiles = [_tile(tmp_path / "a.png", 0, 2.9, 1.5, size=(2, 2))]

    canvas = Compositor(ArtifactStore(tmp_path)).render(tiles)

    assert canvas.size == (4, 3)
    assert canvas.getpixel((0, 0)) == CLEAR
    assert canvas.getpixel((2, 1)) == RED


def test_render_later_tile_wins_on_overlap(tmp_path: Path) -> None:
    tiles = [
        _tile(tmp_path / "a.png", 0, 0, 0, color=RED),
        _tile(tmp_path / "b.png", 1, 2, 0, color=BLUE),
    ]

    canvas = Compositor(ArtifactStore(tmp_path)).render(tiles)

    assert canvas.getpixel((1, 0)) == RED
    assert canvas.getpixel((2, 0)) == BLUE
    assert canvas.getpixel((3, 0)) == BLUE


def test_render_requires_tiles(tmp_path: Path) -> None:
    with pytest.raises(PlaceComposeFailedError):
        Compositor(ArtifactStore(tmp_path)).render([])


@pytest.mark.asyncio
async def test_compose_fails_on_unreadable_tile(tmp_path: Path) -> None:
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"not an image")
    store = ArtifactStore(tmp_path)

    with pytest.raises(PlaceComposeFailedError):
        await Compositor(store).compose([TilePlacement(image_path=broken, index=0, dx=0, dy=0)], 5)

    assert not store.composite_path(5).exists()


@pytest.mark.asyncio
async def test_compose_fails_on_missing_tile(tmp_path: Path) -> None:
    missing = TilePlacement(image_path=tmp_path / "nope.png", index=0, dx=0, dy=0)

    with pytest.raises(PlaceComposeFailedError):
        await Compositor(ArtifactStore(tmp_path)).compose([missing], 5)


@pytest.mark.asyncio
@pytest.mark.parametrize("dx", [float("inf"), float("nan"), float(2**40)])
async def test_compose_rejects_unrenderable_offsets(tmp_path: Path, dx: float) -> None:
    store = ArtifactStore(tmp_path)
    tile = _tile(tmp_path / "a.png", 0, dx, 0)

    with pytest.raises(PlaceComposeFailedError):
        await Compositor(store).compose([tile], 5)

    assert not store.composite_path(5).exists()
