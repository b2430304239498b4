import json

import pytest

from tool_agent.domain.exceptions import ToolError
from tool_agent.tools.file_tools import (
    EditFileInput,
    ListFilesInput,
    ReadFileInput,
    edit_file,
    list_files,
    read_file,
)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_read_file_returns_full_text(workdir):
    (workdir / "a.txt").write_text("hello\nworld\n", encoding="utf-8")
    assert read_file(ReadFileInput(path="a.txt")) == "hello\nworld\n"


def test_read_file_missing_raises_os_error(workdir):
    with pytest.raises(FileNotFoundError):
        read_file(ReadFileInput(path="missing.txt"))


def test_read_file_directory_raises_os_error(workdir):
    (workdir / "sub").mkdir()
    with pytest.raises(OSError):
        read_file(ReadFileInput(path="sub"))


def test_list_files_empty_directory(workdir):
    assert list_files(ListFilesInput()) == "[]"


def test_list_files_nested(workdir):
    (workdir / "a.txt").write_text("a", encoding="utf-8")
    (workdir / "sub").mkdir()
    (workdir / "sub" / "b.txt").write_text("b", encoding="utf-8")
    assert json.loads(list_files(ListFilesInput(path="."))) == ["a.txt", "sub/", "sub/b.txt"]


def test_list_files_depth_first_order(workdir):
    (workdir / "b").mkdir()
    (workdir / "b" / "z.txt").write_text("", encoding="utf-8")
    (workdir / "c.txt").write_text("", encoding="utf-8")
    (workdir / "a.txt").write_text("", encoding="utf-8")
    assert json.loads(list_files(ListFilesInput())) == ["a.txt", "b/", "b/z.txt", "c.txt"]


def test_list_files_relative_to_given_path(workdir):
    (workdir / "pkg" / "inner").mkdir(parents=True)
    (workdir / "pkg" / "inner" / "m.py").write_text("", encoding="utf-8")
    assert json.loads(list_files(ListFilesInput(path="pkg"))) == ["inner/", "inner/m.py"]


def test_list_files_empty_path_means_cwd(workdir):
    (workdir / "x").write_text("", encoding="utf-8")
    assert json.loads(list_files(ListFilesInput(path=""))) == ["x"]


def test_list_files_includes_hidden_entries(workdir):
    (workdir / ".git").mkdir()
    (workdir / ".git" / "HEAD").write_text("ref", encoding="utf-8")
    assert json.loads(list_files(ListFilesInput())) == [".git/", ".git/HEAD"]


def test_list_files_missing_root(workdir):
    with pytest.raises(OSError):
        list_files(ListFilesInput(path="nope"))


def test_edit_file_replaces_text(workdir):
    (workdir / "notes.txt").write_text("hello world", encoding="utf-8")
    result = edit_file(EditFileInput(path="notes.txt", old_str="world", new_str="there"))
    assert result == "OK"
    assert (workdir / "notes.txt").read_text(encoding="utf-8") == "hello there"


def test_edit_file_replaces_every_occurrence(workdir):
    (workdir / "f.txt").write_text("x-x-x", encoding="utf-8")
    edit_file(EditFileInput(path="f.txt", old_str="x", new_str="yy"))
    assert (workdir / "f.txt").read_text(encoding="utf-8") == "yy-yy-yy"


def test_edit_file_no_match_leaves_file_unchanged(workdir):
    (workdir / "f.txt").write_text("abc", encoding="utf-8")
    with pytest.raises(ToolError, match="old_str not found in file"):
        edit_file(EditFileInput(path="f.txt", old_str="zzz", new_str="y"))
    assert (workdir / "f.txt").read_text(encoding="utf-8") == "abc"


def test_edit_file_creates_file_and_parents(workdir):
    result = edit_file(EditFileInput(path="new/dir/file.txt", old_str="", new_str="content"))
    assert "Successfully created file" in result
    assert (workdir / "new" / "dir").is_dir()
    assert (workdir / "new" / "dir" / "file.txt").read_text(encoding="utf-8") == "content"


def test_edit_file_create_then_replace(workdir):
    edit_file(EditFileInput(path="p.txt", old_str="", new_str="first"))
    assert (workdir / "p.txt").read_text(encoding="utf-8") == "first"
    assert edit_file(EditFileInput(path="p.txt", old_str="first", new_str="second")) == "OK"
    assert (workdir / "p.txt").read_text(encoding="utf-8") == "second"


def test_edit_file_missing_with_old_str_fails(workdir):
    with pytest.raises(FileNotFoundError):
        edit_file(EditFileInput(path="ghost.txt", old_str="a", new_str="b"))
    assert not (workdir / "ghost.txt").exists()


def test_edit_file_empty_old_str_on_existing_file(workdir):
    (workdir / "f.txt").write_text("keep", encoding="utf-8")
    with pytest.raises(ToolError):
        edit_file(EditFileInput(path="f.txt", old_str="", new_str="x"))
    assert (workdir / "f.txt").read_text(encoding="utf-8") == "keep"


def test_edit_file_preserves_crlf(workdir):
    (workdir / "w.txt").write_bytes(b"one\r\ntwo\r\n")
    edit_file(EditFileInput(path="w.txt", old_str="two", new_str="2"))
    assert (workdir / "w.txt").read_bytes() == b"one\r\n2\r\n"


def test_paths_are_not_sandboxed(workdir, monkeypatch):
    (workdir / "inside").mkdir()
    (workdir / "outside.txt").write_text("up", encoding="utf-8")
    monkeypatch.chdir(workdir / "inside")
    assert read_file(ReadFileInput(path="../outside.txt")) == "up"


def test_read_file_rejects_non_utf8(workdir):
    (workdir / "latin1.txt").write_bytes("café".encode("latin-1"))
    with pytest.raises(ToolError, match="not a UTF-8 text file"):
        read_file(ReadFileInput(path="latin1.txt"))


def test_list_files_none_path(workdir):
    (workdir / "a.txt").write_text("", encoding="utf-8")
    assert list_files(ListFilesInput(path=None)) == '["a.txt"]'
