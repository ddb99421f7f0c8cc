import time

import numpy as np

from biocore.galleries import make_gallery
from biocore.models.domain import Record
from biocore.stages import (
    Center,
    Flatten,
    Identity,
    Pipeline,
    ReadMode,
    Stage,
    clone_stage,
    compose,
    make_stage,
    wrap_streaming,
)
from conftest import record


class Recorder(Stage):
    def __init__(self):
        self.blocks = []
        self.closed = False

    def project(self, records):
        self.blocks.append([item.name for item in records])
        return list(records)

    def close(self):
        self.closed = True


class Sleepy(Stage):
    def project(self, records):
        time.sleep(0.01 * (5 - int(records[0].name)))
        return [item.with_data(np.asarray([float(item.name)])) for item in records]


def test_compose_closes_only_owned_stages():
    owned, shared = Recorder(), Recorder()
    pipeline = compose([owned, shared], shared=[shared])
    pipeline.close()
    assert owned.closed
    assert not shared.closed


def test_pipeline_trains_on_projected_data():
    pipeline = Pipeline([Flatten(), Center()])
    records = [Record(name="a", data=np.ones((2, 2))), Record(name="b", data=np.zeros((2, 2)))]
    pipeline.train(records)
    center = pipeline.stages[1]
    np.testing.assert_allclose(center.mean, np.full(4, 0.5))
    projected = pipeline.project(records)
    np.testing.assert_allclose(projected[0].data, np.full(4, 0.5))


def test_stream_gallery_reads_blocks_in_order():
    gallery = make_gallery("stream.mem")
    gallery.write([record(str(index), index) for index in range(5)])
    recorder = Recorder()
    stream = wrap_streaming(recorder, ReadMode.STREAM_GALLERY, block_size=2)
    output = stream.project([Record(name="stream.mem")])
    assert recorder.blocks == [["0", "1"], ["2", "3"], ["4"]]
    assert [item.name for item in output] == ["0", "1", "2", "3", "4"]


def test_distribute_frames_preserves_order():
    stream = wrap_streaming(Sleepy(), ReadMode.DISTRIBUTE_FRAMES, parallelism=4)
    output = stream.project([Record(name=str(index)) for index in range(5)])
    assert [item.name for item in output] == ["0", "1", "2", "3", "4"]
    assert [float(item.data[0]) for item in output] == [0.0, 1.0, 2.0, 3.0, 4.0]


def test_simplify_without_changes_returns_the_pipeline():
    pipeline = Pipeline([Flatten(), Center()])
    assert pipeline.simplify() == (pipeline, False)


def test_simplify_of_identity_only_pipeline():
    stage, owned = Pipeline([Identity(), Identity()]).simplify()
    assert isinstance(stage, Identity)
    assert owned


def test_clone_keeps_trained_state():
    stage = make_stage("Flatten+Center")
    stage.train([Record(name="a", data=np.arange(3.0)), Record(name="b", data=np.arange(3.0) + 2)])
    copy = clone_stage(stage)
    assert copy is not stage
    assert copy.describe() == "Flatten+Center"
    np.testing.assert_allclose(copy.stages[1].mean, stage.stages[1].mean)


def test_set_config_reaches_nested_stages():
    stage = make_stage("Resize(8)+(Gray+Resize(4))")
    assert stage.set_config("width", 2)
    assert stage.stages[0].width == 2
    assert stage.stages[1].stages[1].width == 2
