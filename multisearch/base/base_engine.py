import abc
import logging
from pathlib import Path
from typing import Any, Dict


class BaseEngine(abc.ABC):
    """
    Common base for components that write run artifacts.

    ``base_dir`` is the run directory (``outputs.base_results_dir``) and
    ``output_dir`` the engine's own numbered sub-directory below it. With
    ``outputs.skip_dir_creation`` nothing is created on disk.
    """

    def __init__(self, config: Dict[str, Any], logger: logging.Logger):
        self.config = config
        self.logger = logger
        outputs = config.get('outputs', {})
        self.base_dir = Path(outputs.get('base_results_dir', 'results'))
        self.skip_dir_creation = outputs.get('skip_dir_creation', False)
        self.output_dir = self.base_dir / self._get_engine_directory_name()

        if not self.skip_dir_creation:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self.logger.info(f"Output directory for {self.__class__.__name__}: {self.output_dir}")

    @abc.abstractmethod
    def _get_engine_directory_name(self) -> str:
        """Numbered directory name below the run directory, e.g. '02_HyperparameterSearch'."""

    def artifact_dir(self, name: str) -> Path:
        """Sibling directory of ``output_dir`` for artifacts owned by another stage."""
        path = self.base_dir / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    @abc.abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """Run the engine."""
