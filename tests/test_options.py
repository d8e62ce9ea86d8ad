"""Tests for mddfMD.options.Options."""

import pytest

from mddfMD.options import Options


class TestDefaults:

    def test_defaults(self):
        options = Options()
        assert options.firstframe == 0
        assert options.lastframe == -1
        assert options.stride == 1
        assert options.binstep == 0.02
        assert options.dbulk == 10.0
        assert options.cutoff == 10.0
        assert options.usecutoff is False
        assert options.irefatom == 0
        assert options.n_random_samples == 10
        assert options.lcell == 1
        assert options.nthreads == 0
        assert options.seed == 321
        assert options.frame_weights is None
        assert options.silent is False

    def test_cutoff_forced_to_dbulk_without_usecutoff(self):
        options = Options(dbulk=8.0, cutoff=12.0)
        assert options.cutoff == 8.0
        assert options.dmax == 8.0

    def test_cutoff_kept_with_usecutoff(self):
        options = Options(dbulk=8.0, cutoff=12.0, usecutoff=True)
        assert options.cutoff == 12.0
        assert options.dmax == 12.0


class TestValidation:

    @pytest.mark.parametrize("kwargs", [
        {"firstframe": -1},
        {"lastframe": -2},
        {"firstframe": 5, "lastframe": 3},
        {"stride": 0},
        {"binstep": 0.0},
        {"dbulk": -1.0},
        {"usecutoff": True, "dbulk": 10.0, "cutoff": 8.0},
        {"irefatom": -1},
        {"n_random_samples": 0},
        {"lcell": 0},
        {"nthreads": -1},
        {"frame_weights": [1.0, -0.5]},
    ])
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(ValueError):
            Options(**kwargs)


class TestFrames:

    def test_frame_indices_default(self):
        assert list(Options().frame_indices(4)) == [0, 1, 2, 3]

    def test_frame_indices_inclusive_lastframe_and_stride(self):
        options = Options(firstframe=1, lastframe=7, stride=3)
        assert list(options.frame_indices(10)) == [1, 4, 7]

    def test_frame_indices_out_of_range(self):
        with pytest.raises(ValueError, match="firstframe"):
            Options(firstframe=4).frame_indices(4)
        with pytest.raises(ValueError, match="lastframe"):
            Options(lastframe=4).frame_indices(4)

    def test_frame_weights(self):
        options = Options(frame_weights=[0.5, 2.0])
        assert options.frame_weight(0) == 0.5
        assert options.frame_weight(1) == 2.0
        assert options.frame_weight(2) == 1.0
        assert Options().frame_weight(3) == 1.0

    def test_dict_round_trip(self):
        options = Options(binstep=0.1, usecutoff=True, cutoff=12.0, seed=None, frame_weights=[1, 2])
        assert Options.from_dict(options.to_dict()) == options
