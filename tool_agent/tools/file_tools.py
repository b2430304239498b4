"""内置文件工具：read_file、list_files、edit_file。

路径一律相对于进程工作目录解析，不做沙箱限制；``../`` 与绝对路径按原样使用。
文本按 UTF-8 读取，非 UTF-8 文件会返回可恢复的 ToolError，而不是被静默改写。
"""

import json
import os
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from tool_agent.domain.exceptions import ToolError
from .definitions import ToolDef
from .schema import build_params


class ReadFileInput(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    path: str = Field(min_length=1, description="The relative path of a file in the working directory.")


class ListFilesInput(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    # 可选参数常被模型显式传成 null，按未提供处理
    path: Optional[str] = Field(
        default=".",
        description="Optional relative path to list files from. Defaults to current directory if not provided.",
    )


class EditFileInput(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    path: str = Field(min_length=1, description="The path to the file")
    old_str: str = Field(description="Text to search for - must match exactly")
    new_str: str = Field(description="Text to replace old_str with")


def _read_text(path) -> str:
    try:
        with open(path, "r", encoding="utf-8", newline="") as fh:
            return fh.read()
    except UnicodeDecodeError as exc:
        raise ToolError(f"{path} is not a UTF-8 text file: {exc}") from exc


def read_file(args: ReadFileInput) -> str:
    return _read_text(args.path)


def _walk(directory: str, prefix: str = "") -> Iterator[Tuple[str, bool]]:
    """深度优先遍历，每层按名称排序，不跟随符号链接。"""

    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        rel = prefix + entry.name
        if entry.is_dir(follow_symlinks=False):
            yield rel + "/", True
            yield from _walk(entry.path, rel + "/")
        else:
            yield rel, False


def list_files(args: ListFilesInput) -> str:
    root = args.path or "."
    # 根目录不存在或不是目录时 scandir 直接抛 OSError
    files: List[str] = [rel for rel, _ in _walk(root)]
    return json.dumps(files, ensure_ascii=False, separators=(",", ":"))


def _write_text(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)


def _create_new_file(path: Path, content: str) -> str:
    parent = path.parent
    if str(parent) not in ("", "."):
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ToolError(f"failed to create directory: {exc}") from exc
    try:
        _write_text(path, content)
    except OSError as exc:
        raise ToolError(f"failed to create file: {exc}") from exc
    return f"Successfully created file {path}"


def edit_file(args: EditFileInput) -> str:
    path = Path(args.path)
    try:
        old_content = _read_text(path)
    except FileNotFoundError:
        if args.old_str == "":
            return _create_new_file(path, args.new_str)
        raise

    if args.old_str == "":
        raise ToolError("old_str must not be empty when editing an existing file")
    if old_content.count(args.old_str) == 0:
        raise ToolError("old_str not found in file")

    _write_text(path, old_content.replace(args.old_str, args.new_str))
    return "OK"


READ_FILE_DESCRIPTION = (
    "Read the contents of a given relative file path. Use this when you want to see "
    "what's inside a file. Do not use this with directory names."
)
LIST_FILES_DESCRIPTION = (
    "List files and directories at a given path. If no path is provided, lists files "
    "in the current directory."
)
EDIT_FILE_DESCRIPTION = """Make edits to a text file.

Replaces every occurrence of 'old_str' with 'new_str' in the given file. 'old_str' and 'new_str' MUST be different from each other.

If the file specified with path doesn't exist and 'old_str' is empty, it will be created with 'new_str' as its content.
"""


def default_tool_defs() -> Tuple[ToolDef, ...]:
    return (
        ToolDef(
            name="read_file",
            description=READ_FILE_DESCRIPTION,
            params=build_params(ReadFileInput),
            input_model=ReadFileInput,
            handler=read_file,
        ),
        ToolDef(
            name="list_files",
            description=LIST_FILES_DESCRIPTION,
            params=build_params(ListFilesInput),
            input_model=ListFilesInput,
            handler=list_files,
        ),
        ToolDef(
            name="edit_file",
            description=EDIT_FILE_DESCRIPTION,
            params=build_params(EditFileInput),
            input_model=EditFileInput,
            handler=edit_file,
        ),
    )
