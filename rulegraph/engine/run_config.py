"""
Run Configuration.

An immutable bag of options supplied when a run is invoked. Nodes and
routers read it; nothing in a run can change it.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional
from copy import deepcopy


class RunConfig(Mapping):
    """
    Read-only mapping of option name to value, scoped to a single run.

    Values are deep-copied on construction so later changes to the caller's
    dict never leak into a run in progress.
    """

    __slots__ = ("_options",)

    def __init__(self, options: Optional[Mapping] = None, **kwargs: Any):
        data: Dict[str, Any] = deepcopy(dict(options or {}))
        data.update(deepcopy(kwargs))
        object.__setattr__(self, "_options", MappingProxyType(data))

    def __getitem__(self, key: str) -> Any:
        return self._options[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("RunConfig is immutable")

    @classmethod
    def coerce(cls, config: Optional[Mapping]) -> "RunConfig":
        if isinstance(config, RunConfig):
            return config
        return cls(config)

    def __repr__(self) -> str:
        return f"RunConfig({dict(self._options)!r})"
