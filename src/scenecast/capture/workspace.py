"""
Encoder Workspace

The external encoder's named file set: a private scratch directory where
frames, the recorded audio and intermediate streams are written by name,
and where ffmpeg runs. Only exit status and output bytes are inspected.

Usage:
    with EncoderWorkspace() as ws:
        ws.write_file("frame_00000.jpg", jpeg)
        ws.run(["-framerate", "10", "-i", "frame_%05d.jpg", "out.mp4"])
        video = ws.read_file("out.mp4")
"""

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from ..config import get_settings
from ..core.cmd_runner import run_command
from ..exceptions import EncoderFailure
from ..ffmpeg_utils import build_ffmpeg_cmd
from ..logger import logger


class EncoderWorkspace:
    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        prefix: str = "scenecast_",
        binary: Optional[str] = None,
    ):
        settings = get_settings()
        self.binary = binary or settings.encoding.ffmpeg_binary
        if root is None:
            temp_dir = settings.paths.temp_dir
            temp_dir.mkdir(parents=True, exist_ok=True)
            self.root = Path(tempfile.mkdtemp(prefix=prefix, dir=str(temp_dir)))
            self._owns_root = True
        else:
            self.root = Path(root)
            self.root.mkdir(parents=True, exist_ok=True)
            self._owns_root = False

    def __enter__(self) -> "EncoderWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"Invalid workspace file name: {name!r}")
        return self.root / name

    # -------------------------------------------------------------------------
    # Virtual file set
    # -------------------------------------------------------------------------
    def write_file(self, name: str, data: bytes) -> None:
        self._path(name).write_bytes(data)

    def read_file(self, name: str) -> bytes:
        try:
            return self._path(name).read_bytes()
        except FileNotFoundError as e:
            raise EncoderFailure(f"Encoder output missing: {name}") from e

    def delete_file(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def copy_file(self, source: str, target: str) -> None:
        shutil.copyfile(self._path(source), self._path(target))

    def list_files(self) -> List[str]:
        return sorted(p.name for p in self.root.iterdir() if p.is_file())

    # -------------------------------------------------------------------------
    # Encoder process
    # -------------------------------------------------------------------------
    def run(self, args: List[str]) -> subprocess.CompletedProcess:
        """
        Run ffmpeg inside the workspace.

        Raises:
            EncoderFailure: ffmpeg missing, or non-zero exit
        """
        cmd = build_ffmpeg_cmd(args, self.binary)
        try:
            result = run_command(cmd, cwd=self.root, check=False)
        except (OSError, subprocess.SubprocessError) as e:
            raise EncoderFailure(f"Encoder could not run: {e}", command=cmd) from e
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.error(f"   ❌ ffmpeg exited with {result.returncode}: {stderr[-500:]}")
            raise EncoderFailure(
                f"Encoder exited with status {result.returncode}",
                command=cmd,
                stderr=stderr,
            )
        return result

    def close(self) -> None:
        """Remove the scratch directory if this workspace created it."""
        if self._owns_root and self.root.exists():
            shutil.rmtree(self.root, ignore_errors=True)
