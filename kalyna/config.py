import os
import pathlib
import typing

from starlette.config import Config as BaseConfig
from starlette.config import Environ

__all__ = ["Config", "is_unittest_environment"]


def is_unittest_environment() -> bool:
    """Test if code executed in unit test environment."""
    return "PYTEST_VERSION" in os.environ


class Config(BaseConfig):
    """
    Application configuration.

    Values are looked up in the environment first and then in env files.
    Values read from env files are the application init parameters,
    see `kalyna.attributes.snapshot_init_parameters`.
    """

    def __init__(
        self,
        env_files: typing.Sequence[str | pathlib.Path] | None = None,
        env_prefix: str = "",
        environ: typing.Mapping[str, str] | None = None,
    ) -> None:
        env_files = env_files or []
        super().__init__(None, environ or Environ(), env_prefix)
        self.env_files = [pathlib.Path(env_file) for env_file in env_files]
        for env_file in self.env_files:
            if env_file.exists() and env_file.is_file():
                self.file_values.update(BaseConfig(env_file).file_values)

    @property
    def init_parameters(self) -> dict[str, str]:
        """Values loaded from env files, without the prefix."""
        prefix = self.env_prefix
        return {
            key[len(prefix) :]: value
            for key, value in self.file_values.items()
            if not prefix or key.startswith(prefix)
        }
