import io
import zlib

import numpy as np
import pytest

from biocore import operations
from biocore.algorithms.persistence import FORMAT_VERSION, CompareMode, dump_model, parse_model
from biocore.errors import ModelFormatError
from biocore.models.domain import Record
from biocore.plugins.stream import ModelStream
from biocore.stages import Flatten, GalleryCompare, serialize_stage
from conftest import CustomCompare, record, reds


def test_classifier_round_trip(registry, image_dir, tmp_path):
    folder = image_dir("train", reds(10, 20, 60))
    model = tmp_path / "center.model"
    trained = operations.train(str(folder), str(model), algorithm="Resize(2)+Flatten+Center", registry=registry)
    assert model.exists()

    loaded = registry.get_algorithm(str(model))
    assert loaded.is_classifier()
    assert loaded.stage.describe() == trained.stage.describe()

    sample = [Record(name="sample", data=np.full((2, 2, 3), 7, dtype=np.uint8))]
    expected = trained.enroll_records(sample)[0].data
    actual = loaded.enroll_records(sample)[0].data
    assert actual.tobytes() == expected.tobytes()
    trained.close()


def test_distance_model_round_trip(registry, image_dir, tmp_path):
    folder = image_dir("train", reds(10, 20))
    model = tmp_path / "verify.model"
    operations.train(str(folder), str(model), algorithm="FaceDetect:L2", registry=registry).close()

    loaded = parse_model(model.read_bytes())
    assert loaded.mode is CompareMode.DISTANCE
    assert isinstance(loaded.comparison, GalleryCompare)
    assert loaded.comparison.distance is loaded.distance

    core = registry.get_algorithm(str(model))
    assert not core.is_classifier()
    assert core.distance.describe() == "L2"


def test_transform_model_round_trip(registry, tmp_path):
    core = registry.build("FaceDetect!CustomCompare")
    model = tmp_path / "custom.model"
    core.store(model)

    loaded = parse_model(model.read_bytes())
    assert loaded.mode is CompareMode.TRANSFORM
    assert loaded.distance is None
    assert isinstance(loaded.comparison, CustomCompare)


def test_models_dir_lookup_and_overrides(registry, settings):
    core = registry.build("Resize(8)+Flatten:L2")
    core.store(settings.models_dir / "small")

    named = registry.get_algorithm("small")
    assert named.stage.describe() == "Resize(width=8,height=8)+Flatten"

    tuned = registry.get_algorithm("small[width=2,height=2]")
    assert tuned.stage.describe() == "Resize(width=2,height=2)+Flatten"
    assert named.stage.describe() == "Resize(width=8,height=8)+Flatten"


def test_store_leaves_no_temporary_files(registry, tmp_path):
    registry.build("Flatten").store(tmp_path / "models" / "flat.model")
    assert [path.name for path in (tmp_path / "models").iterdir()] == ["flat.model"]


def test_unknown_version_is_rejected():
    stream = ModelStream()
    stream.write_int32(FORMAT_VERSION + 1)
    with pytest.raises(ModelFormatError, match="version"):
        parse_model(zlib.compress(stream.getvalue()))


def test_unknown_compare_mode_is_rejected():
    stream = ModelStream()
    stream.write_int32(FORMAT_VERSION)
    serialize_stage(Flatten(), stream)
    stream.write_int32(7)
    with pytest.raises(ModelFormatError, match="compare mode"):
        parse_model(zlib.compress(stream.getvalue()))


def test_truncated_and_uncompressed_payloads_are_rejected():
    with pytest.raises(ModelFormatError):
        parse_model(b"not a model")
    blob = zlib.decompress(dump_model(Flatten()))
    with pytest.raises(ModelFormatError):
        parse_model(zlib.compress(blob[:-2]))


def test_model_stream_round_trips_records():
    stream = ModelStream()
    stream.write_record(record("a", 1, 2).with_data(np.eye(2, dtype=np.float32)))
    stream.write_array(None)
    reader = ModelStream(io.BytesIO(stream.getvalue()))
    restored = reader.read_record()
    assert restored.name == "a"
    np.testing.assert_array_equal(restored.data, np.eye(2))
    assert reader.read_array() is None
