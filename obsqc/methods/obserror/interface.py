"""obsqc.methods.obserror.interface

Contract for observation-error models living next to the QC layer.

An error model is created from a configuration and an ObsSpace, updated by
``prior()`` before the errors are used, offered a ``post()`` hook afterwards
(no-op unless a model needs it) and finally released with ``delete()``.

``ObsErrorRegistry`` hands out integer keys for live models so callers that
can only carry plain integers (bindings, worker messages) can refer to them.
The QC manager does not use either.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from obsqc.obs.space import ObsSpace


class ObsErrorModel(ABC):
    """Observation-error model lifecycle: create, prior, post, delete."""

    def __init__(self, config: Mapping[str, Any], obsspace: ObsSpace):
        self.config = dict(config or {})
        self.obsspace = obsspace

    @classmethod
    def create(cls, config: Mapping[str, Any], obsspace: ObsSpace) -> "ObsErrorModel":
        return cls(config, obsspace)

    @abstractmethod
    def prior(self) -> None:
        """Compute or update the observation errors before they are used."""

    def post(self) -> None:
        """Hook after the errors were used; nothing to do by default."""

    def delete(self) -> None:
        """Release resources held by the model."""


class ObsErrorRegistry:
    """Integer handle table for live ``ObsErrorModel`` instances."""

    def __init__(self):
        self._items: Dict[int, ObsErrorModel] = {}
        self._next = 1

    def setup(self, model: ObsErrorModel) -> int:
        key = self._next
        self._next += 1
        self._items[key] = model
        logger.trace("ObsErrorRegistry: registered {} as {}", type(model).__name__, key)
        return key

    def get(self, key: int) -> ObsErrorModel:
        try:
            return self._items[key]
        except KeyError:
            raise KeyError(f"No observation-error model registered under key {key}") from None

    def delete(self, key: int) -> None:
        model = self._items.pop(key, None)
        if model is None:
            raise KeyError(f"No observation-error model registered under key {key}")
        model.delete()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: Optional[int]) -> bool:
        return key in self._items
