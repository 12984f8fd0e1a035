import subprocess
from pathlib import Path
from typing import List, Optional, Protocol

import structlog

from apidocs import config
from apidocs.exceptions import RenderError

log = structlog.get_logger()


class Renderer(Protocol):
    def render(self, spec_path: Path, out_path: Path) -> None:
        ...


class RedocRenderer:
    """Render an OpenAPI spec into a standalone HTML page with an external command.

    The command is called as `<command> -o <out_path> <spec_path>`, only its exit status
    is checked.
    """

    def __init__(self, command: Optional[List[str]] = None) -> None:
        self.command = list(command or config.DEFAULT_RENDER_COMMAND)

    def render(self, spec_path: Path, out_path: Path) -> None:
        args = self.command + ["-o", str(out_path), str(spec_path)]
        log.info("render", command=" ".join(args))
        try:
            subprocess.run(args, check=True)
        except subprocess.CalledProcessError as e:
            raise RenderError(f"Renderer `{' '.join(args)}` failed with exit code {e.returncode}")
        except OSError as e:
            raise RenderError(f"Renderer `{args[0]}` could not be started: {e}")
