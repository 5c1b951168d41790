"""Tests for the observation-error model contract and handle registry."""

from __future__ import annotations

import numpy as np
import pytest

from obsqc.methods.obserror import ObsErrorModel, ObsErrorRegistry
from obsqc.obs.space import ObsSpace


class ConstantError(ObsErrorModel):
    """Sets every observation error to a configured constant."""

    def __init__(self, config, obsspace):
        super().__init__(config, obsspace)
        self.errors = None
        self.deleted = False

    def prior(self) -> None:
        self.errors = self.obsspace.make_obs_errors(
            np.full((self.obsspace.nvars, self.obsspace.nlocs), self.config["value"])
        )

    def delete(self) -> None:
        self.deleted = True


@pytest.fixture
def obsspace() -> ObsSpace:
    return ObsSpace.from_arrays("gnssro", ["bending_angle"], [[1.0, 2.0, 3.0]])


class TestObsErrorModel:
    def test_lifecycle(self, obsspace) -> None:
        model = ConstantError.create({"value": 0.5}, obsspace)
        model.prior()
        assert model.errors.data.tolist() == [[0.5, 0.5, 0.5]]
        assert model.post() is None
        model.delete()
        assert model.deleted

    def test_abstract(self, obsspace) -> None:
        with pytest.raises(TypeError):
            ObsErrorModel({}, obsspace)


class TestObsErrorRegistry:
    def test_setup_get_delete(self, obsspace) -> None:
        reg = ObsErrorRegistry()
        model = ConstantError.create({"value": 1.0}, obsspace)
        key = reg.setup(model)
        assert key in reg
        assert reg.get(key) is model
        reg.delete(key)
        assert model.deleted
        assert key not in reg
        assert len(reg) == 0

    def test_keys_are_unique(self, obsspace) -> None:
        reg = ObsErrorRegistry()
        keys = {reg.setup(ConstantError.create({"value": 1.0}, obsspace)) for _ in range(3)}
        assert len(keys) == 3

    def test_unknown_key(self) -> None:
        reg = ObsErrorRegistry()
        with pytest.raises(KeyError):
            reg.get(7)
        with pytest.raises(KeyError):
            reg.delete(7)
