import pytest

from trecfuse.errors import ConfigError, InconsistentInputError, MissingScoreError
from trecfuse.fusion.mapfuse import MAPFuse, system_key

DIRECTORY = "/data/var/input/trec3/run1"


class TestSystemKey:

    def test_last_two_directory_parts_and_input_name(self):
        assert system_key(DIRECTORY, f"{DIRECTORY}/input.INQ101") == "trec3_run1_inq101"

    def test_only_leading_input_prefix_removed(self):
        assert system_key("a/b", "input.input.x") == "a_b_input.x"


class TestMAPFuse:

    @pytest.fixture
    def fuser(self):
        return MAPFuse(map_scores={"trec3_run1_inq101": 0.5, "TREC3_RUN1_CITRI1": 0.25}, directory=DIRECTORY)

    def test_requires_map_scores(self):
        with pytest.raises(ConfigError):
            MAPFuse()

    def test_does_not_require_qrels(self, fuser):
        assert fuser.qrels() is None

    def test_votes_decay_with_position(self, fuser, make_rs):
        a = make_rs("401", [("d1", 2.0), ("d2", 1.0)], source=f"{DIRECTORY}/input.inq101")
        b = make_rs("401", [("d2", 2.0), ("d3", 1.0)], source=f"{DIRECTORY}/input.citri1")

        fused = fuser.fuse(a, b)
        scores = {line.docno: line.score for line in fused}
        assert scores == pytest.approx({"d1": 0.5, "d2": 0.5, "d3": 0.125})
        assert fused.get_docnos() == ["d1", "d2", "d3"]

    def test_missing_map_entry(self, fuser, make_rs):
        rs = make_rs("401", [("d1", 1.0)], source=f"{DIRECTORY}/input.unknown")
        with pytest.raises(MissingScoreError, match="trec3_run1_unknown"):
            fuser.fuse(rs)

    def test_result_set_without_source(self, fuser, make_rs):
        with pytest.raises(MissingScoreError):
            fuser.fuse(make_rs("401", [("d1", 1.0)]))

    def test_training_only_fixes_input_count(self, make_rs):
        """Training leaves the scores alone but still pins the number of systems."""

        def systems():
            return (
                make_rs("401", [("d1", 2.0), ("d2", 1.0)], source=f"{DIRECTORY}/input.inq101"),
                make_rs("401", [("d2", 2.0), ("d3", 1.0)], source=f"{DIRECTORY}/input.citri1"),
            )

        map_scores = {"trec3_run1_inq101": 0.5, "trec3_run1_citri1": 0.25}
        untrained = MAPFuse(map_scores=map_scores, directory=DIRECTORY)
        trained = MAPFuse(map_scores=map_scores, directory=DIRECTORY)
        trained.train(*systems())
        assert trained.expected_inputs == 2

        expected = [(line.docno, line.score) for line in untrained.fuse(*systems())]
        assert [(line.docno, line.score) for line in trained.fuse(*systems())] == expected

        with pytest.raises(InconsistentInputError):
            trained.fuse(systems()[0])

    def test_zero_map_is_allowed(self, make_rs):
        fuser = MAPFuse(map_scores={"sys": 0.0})
        fused = fuser.fuse(make_rs("401", [("d1", 1.0)], source="input.sys"))
        assert fused.get_line(0).score == 0.0
