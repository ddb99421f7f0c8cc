import pytest

from biocore.errors import PluginError
from biocore.models.domain import FileRef
from biocore.plugins.parsing import coerce_value, is_wrapped, parse_call, split_top_level
from biocore.stages import Pipeline, Resize, make_stage


def test_split_top_level_respects_nesting():
    assert split_top_level("A(x:y):B[c:d]", ":") == ["A(x:y)", "B[c:d]"]
    assert split_top_level("A+B", "!") == ["A+B"]


def test_split_top_level_rejects_unbalanced_brackets():
    with pytest.raises(PluginError):
        split_top_level("A(B", "+")
    with pytest.raises(PluginError):
        split_top_level("A)B(", "+")


def test_is_wrapped():
    assert is_wrapped("(A+B)")
    assert not is_wrapped("(A)+(B)")
    assert not is_wrapped("A+B")


def test_parse_call_positional_and_keyword():
    name, args, kwargs = parse_call("Resize(8, height=4)")
    assert name == "Resize"
    assert args == ["8"]
    assert kwargs == {"height": "4"}


def test_parse_call_keeps_nested_descriptions_intact():
    name, args, kwargs = parse_call("GalleryCompare(distance=Foo(a=1,b=2),transposed=true)")
    assert name == "GalleryCompare"
    assert kwargs == {"distance": "Foo(a=1,b=2)", "transposed": "true"}


def test_parse_call_rejects_positional_after_keyword():
    with pytest.raises(PluginError):
        parse_call("Resize(width=8, 4)")


def test_coerce_value():
    assert coerce_value("true") is True
    assert coerce_value("off") is False
    assert coerce_value("12") == 12
    assert coerce_value("0.5") == 0.5
    assert coerce_value(" L2 ") == "L2"


def test_make_stage_builds_pipelines_and_groups():
    stage = make_stage("(Resize(4)+Gray)+Flatten")
    assert isinstance(stage, Pipeline)
    assert stage.describe() == "Resize(width=4,height=4)+Gray+Flatten"


def test_make_stage_rejects_unknown_names_and_arguments():
    with pytest.raises(PluginError):
        make_stage("DoesNotExist")
    with pytest.raises(PluginError):
        make_stage("Resize(width=0)")
    with pytest.raises(PluginError):
        make_stage("Resize(depth=3)")


def test_set_config_only_accepts_declared_parameters():
    stage = Resize(8, 8)
    assert stage.set_config("width", "2")
    assert stage.width == 2
    assert not stage.set_config("colour", "red")


def test_file_ref_parses_flags():
    ref = FileRef.parse("out/scores.npy[cache,algorithm=FaceDetect:L2]")
    assert ref.name == "out/scores.npy"
    assert ref.get_bool("cache")
    assert ref.get("algorithm") == "FaceDetect:L2"
    assert ref.suffix == "npy"
    assert ref.base_name == "scores"
    assert FileRef.parse(ref.flat()) == ref


def test_file_ref_without_suffix():
    ref = FileRef.parse("images/faces")
    assert ref.suffix == ""
    assert ref.base_name == "faces"
    assert not ref.params


def test_file_ref_content_hash_tracks_file_content(tmp_path):
    path = tmp_path / "list.txt"
    path.write_text("a.png\n", encoding="utf-8")
    first = FileRef.parse(str(path)).content_hash()
    path.write_text("b.png\n", encoding="utf-8")
    assert FileRef.parse(str(path)).content_hash() != first
