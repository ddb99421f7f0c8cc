import numpy as np
import pytest

from biocore.errors import GalleryError
from biocore.galleries import (
    DirectoryGallery,
    ListGallery,
    copy_gallery,
    gallery_exists,
    is_enrolled,
    make_gallery,
)
from conftest import record, reds


def records(count):
    return [record(f"r{i}", i, i + 1) for i in range(count)]


def test_memory_gallery_reads_in_blocks():
    with make_gallery("blocks.mem", block_size=2) as gallery:
        gallery.write(records(5))
    assert gallery_exists("blocks.mem")

    reader = make_gallery("blocks.mem", block_size=2)
    sizes = []
    done = False
    while not done:
        block, done = reader.read_block()
        sizes.append(len(block))
    assert sizes == [2, 2, 1]
    assert reader.total_size() == 5


def test_memory_gallery_replaces_unless_appending():
    make_gallery("cache.mem").write(records(3))
    make_gallery("cache.mem").write(records(1))
    assert make_gallery("cache.mem").total_size() == 1

    make_gallery("cache.mem[append]").write(records(2))
    assert make_gallery("cache.mem").total_size() == 3


def test_file_gallery_appends_blocks(tmp_path):
    path = tmp_path / "templates.gal"
    with make_gallery(str(path)) as gallery:
        gallery.write(records(2))
        gallery.write(records(1))
    with make_gallery(f"{path}[append]") as gallery:
        gallery.write([record("extra", 9, 9)])

    with make_gallery(str(path), block_size=3) as gallery:
        stored = gallery.read()
    assert [r.name for r in stored] == ["r0", "r1", "r0", "extra"]
    np.testing.assert_array_equal(stored[-1].data, [9, 9])


def test_sqlite_gallery_round_trips_metadata(tmp_path):
    path = tmp_path / "templates.db"
    original = records(3)
    original[1].metadata["label"] = "alice"
    with make_gallery(str(path), block_size=2) as gallery:
        gallery.write(original)

    with make_gallery(str(path), block_size=2) as gallery:
        first, done = gallery.read_block()
        assert len(first) == 2 and not done
        second, done = gallery.read_block()
        assert len(second) == 1 and done
    assert first[1].metadata == {"label": "alice"}
    np.testing.assert_array_equal(second[0].data, [2, 3])

    with make_gallery(str(path)) as gallery:
        assert [r.data for r in gallery.read_metadata()] == [None, None, None]


def test_directory_metadata_does_not_load_images(image_dir):
    folder = image_dir("faces", reds(1, 2, 3))
    gallery = make_gallery(str(folder))
    assert isinstance(gallery, DirectoryGallery)
    metadata = gallery.read_metadata()
    assert [r.name for r in metadata] == [str(folder / f"{i:03d}.png") for i in range(3)]
    assert all(r.data is None for r in metadata)

    loaded = gallery.read()
    assert loaded[2].data.shape == (8, 8, 3)
    assert loaded[2].data[0, 0, 0] == 3


def test_list_gallery_resolves_relative_paths(image_dir, tmp_path):
    folder = image_dir("faces", reds(1, 2))
    listing = tmp_path / "faces.txt"
    listing.write_text("# probes\nfaces/001.png\n\nfaces/000.png\n", encoding="utf-8")

    gallery = make_gallery(str(listing))
    assert isinstance(gallery, ListGallery)
    assert [r.name for r in gallery.read()] == [str(folder / "001.png"), str(folder / "000.png")]
    with pytest.raises(GalleryError):
        gallery.write(records(1))


def test_unknown_gallery_type(tmp_path):
    with pytest.raises(GalleryError):
        make_gallery(str(tmp_path / "scores.xyz"))
    with pytest.raises(GalleryError):
        make_gallery("")


def test_enrolled_formats():
    assert is_enrolled("faces.gal")
    assert is_enrolled("faces.db")
    assert is_enrolled("faces.mem")
    assert not is_enrolled("faces.gal[enroll]")
    assert not is_enrolled("faces.txt")
    assert not is_enrolled("images/")


def test_copy_gallery(tmp_path):
    make_gallery("source.mem").write(records(5))
    assert copy_gallery("source.mem", str(tmp_path / "copy.db"), block_size=2) == 5
    with make_gallery(str(tmp_path / "copy.db")) as gallery:
        assert [r.name for r in gallery.read()] == [f"r{i}" for i in range(5)]


def test_copy_into_read_only_gallery(image_dir):
    folder = image_dir("faces", reds(1))
    make_gallery("source.mem").write(records(1))
    with pytest.raises(GalleryError):
        copy_gallery("source.mem", str(folder))
