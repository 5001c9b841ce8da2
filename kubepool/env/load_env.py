import os
from typing import Callable, Dict, Mapping, TypeVar, Union

from dotenv import dotenv_values
from pydantic import BaseModel

from .env import Env

T = TypeVar("T", bound=BaseModel)

PrimaryType = Union[str, int, bool, float, bytes]


def load_env(
    default: type[Env],
    env_file: str | None = None,
    override: T | None = None,
) -> T:
    """
    Build an ``Env`` from ``KUBEPOOL_*`` variables.

    Later sources win: process environment, then the ``.env`` file (if it
    exists), then fields explicitly set on ``override``. Unknown keys in
    the file are ignored.
    """
    envars = default.types_map()

    values = _convert(envars, os.environ)

    env_file = ".env" if env_file is None else env_file
    if env_file and os.path.exists(env_file):
        values.update(_convert(envars, dotenv_values(dotenv_path=env_file)))

    model = default
    if override is not None:
        values.update(override.model_dump(exclude_unset=True))
        model = type(override)

    return model(
        **{name: value for name, value in values.items() if value is not None}
    )


def _convert(
    envars: Dict[str, Callable[[str], PrimaryType]],
    source: Mapping[str, str | None],
) -> Dict[str, PrimaryType]:
    return {
        name: envars[name](value)
        for name, value in source.items()
        if name in envars and value
    }
