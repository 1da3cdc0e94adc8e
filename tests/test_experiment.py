from pathlib import Path

import pytest
from structlog.testing import capture_logs

from trecfuse import experiment
from trecfuse.config import FusionConfig
from trecfuse.errors import ConfigError
from trecfuse.experiment import (
    evaluate_results,
    find_input_dirs,
    fold_indices,
    init_inputs,
    output_name,
    read_query_rows,
    run_fusion,
)

SYSTEM_A = """\
401 Q0 d1 1 4.0 sysA
401 Q0 d2 2 3.0 sysA
401 Q0 d3 3 2.0 sysA
401 Q0 d4 4 1.0 sysA
402 Q0 e1 1 4.0 sysA
402 Q0 e2 2 3.0 sysA
402 Q0 e3 3 2.0 sysA
402 Q0 e4 4 1.0 sysA
"""

SYSTEM_B = """\
401 Q0 d3 1 9.0 sysB
401 Q0 d1 2 8.0 sysB
401 Q0 d2 3 7.0 sysB
401 Q0 d5 4 6.0 sysB
402 Q0 e2 1 9.0 sysB
402 Q0 e1 2 8.0 sysB
402 Q0 e3 3 7.0 sysB
402 Q0 e4 4 6.0 sysB
"""


@pytest.fixture
def config(tmp_path):
    run_dir = tmp_path / "var" / "input" / "run1"
    run_dir.mkdir(parents=True)
    (run_dir / "input.sysA").write_text(SYSTEM_A)
    (run_dir / "input.sysB").write_text(SYSTEM_B)
    return FusionConfig(base_dir=tmp_path)


def read_lines(path: Path) -> list[list[str]]:
    return [line.split("\t") for line in path.read_text().splitlines()]


class TestHelpers:

    def test_fold_indices(self):
        assert fold_indices(10, 3) == [[0, 1, 2, 3], [4, 5, 6], [7, 8, 9]]

    def test_fold_indices_rejects_zero(self):
        with pytest.raises(ValueError):
            fold_indices(10, 0)

    def test_output_name(self, tmp_path):
        input_dir = tmp_path / "var" / "input"
        assert output_name(input_dir, input_dir / "run1", "ProbFuse_x25_f5", fold=2) == "run1-ProbFuse_x25_f52_fold.out"
        assert output_name(input_dir, input_dir / "trec3" / "run1", "CombMNZ") == "trec3-run1-CombMNZ.out"

    def test_find_input_dirs_returns_leaves(self, tmp_path):
        (tmp_path / "trec3" / "run1").mkdir(parents=True)
        (tmp_path / "trec3" / "run2").mkdir()
        (tmp_path / "trec5").mkdir()
        leaves = find_input_dirs(tmp_path)
        assert [p.relative_to(tmp_path).as_posix() for p in leaves] == ["trec3/run1", "trec3/run2", "trec5"]

    def test_read_query_rows(self, config):
        inputs = sorted((config.input_dir / "run1").glob("input.*"))
        rows = read_query_rows(inputs)
        assert [[rs.qid for rs in row] for row in rows] == [["401", "401"], ["402", "402"]]

    def test_read_query_rows_short_input_warns(self, config):
        inputs = sorted((config.input_dir / "run1").glob("input.*"))
        with capture_logs() as logs:
            rows = read_query_rows(inputs, limit=5)
        assert len(rows) == 2
        assert any(entry["log_level"] == "warning" for entry in logs)


class TestRunFusion:

    def test_untrained_fusion_of_every_query(self, config):
        written = run_fusion(config, "CombMNZ")

        assert [p.name for p in written] == ["run1-CombMNZ.out"]
        lines = read_lines(written[0])
        assert [line[0] for line in lines] == ["401"] * 5 + ["402"] * 4
        assert lines[0][3] == "0"
        assert {line[5] for line in lines} == {"CombMNZ"}

    def test_k_fold_fuses_queries_outside_training_fold(self, config, qrels):
        """Each fold file holds only the queries that fold did not train on."""
        config = config.model_copy(update={"k_folds": 2, "probfuse_x": 2})

        written = run_fusion(config, "ProbFuse", qrels=qrels)

        assert [p.name for p in written] == ["run1-ProbFuse_x2_f21_fold.out", "run1-ProbFuse_x2_f22_fold.out"]
        first, second = (read_lines(p) for p in written)
        assert {line[0] for line in first} == {"402"}
        assert {line[0] for line in second} == {"401"}
        assert {line[5] for line in first} == {"ProbFuse_x2_f2"}

    def test_qrels_loaded_from_config(self, config, tmp_path):
        qrel_file = tmp_path / "qrels.txt"
        qrel_file.write_text("401 0 d1 1\n402 0 e2 1\n")
        config = config.model_copy(update={"k_folds": 2, "qrel_file": qrel_file})

        written = run_fusion(config, "PosFuse")
        assert len(written) == 2

    def test_k_folds_without_qrels(self, config):
        config = config.model_copy(update={"k_folds": 2})
        with pytest.raises(ConfigError):
            run_fusion(config, "CombMNZ")

    def test_missing_input_dir(self, tmp_path):
        with pytest.raises(ConfigError):
            run_fusion(FusionConfig(base_dir=tmp_path / "elsewhere"), "CombMNZ")


class TestInitInputs:

    @pytest.fixture
    def source_dir(self, tmp_path):
        source = tmp_path / "source"
        source.mkdir()
        for name in ("input.a", "input.b", "input.c", "input.d", "input.e"):
            (source / name).write_text("401 Q0 d1 1 1.0 x\n")
        return source

    def test_distributes_distinct_files(self, tmp_path, source_dir):
        config = FusionConfig(base_dir=tmp_path / "exp", runs=2, inputs_per_run=2)
        created = init_inputs(config, source_dir, seed=7)

        assert [p.name for p in created] == ["run1", "run2"]
        names = [sorted(p.name for p in run.iterdir()) for run in created]
        assert all(len(run) == 2 for run in names)
        assert not set(names[0]) & set(names[1])

    def test_seed_is_reproducible(self, tmp_path, source_dir):
        first = init_inputs(FusionConfig(base_dir=tmp_path / "one", runs=1, inputs_per_run=3), source_dir, seed=3)
        second = init_inputs(FusionConfig(base_dir=tmp_path / "two", runs=1, inputs_per_run=3), source_dir, seed=3)
        assert sorted(p.name for p in first[0].iterdir()) == sorted(p.name for p in second[0].iterdir())

    def test_insufficient_inputs(self, tmp_path, source_dir):
        config = FusionConfig(base_dir=tmp_path / "exp", runs=3, inputs_per_run=2)
        with pytest.raises(ConfigError):
            init_inputs(config, source_dir)

    def test_input_dir_must_be_empty(self, tmp_path, source_dir):
        config = FusionConfig(base_dir=tmp_path / "exp", runs=1, inputs_per_run=1)
        init_inputs(config, source_dir)
        with pytest.raises(ConfigError):
            init_inputs(config, source_dir)


class TestEvaluateResults:

    def test_writes_one_report_per_output(self, config, monkeypatch, tmp_path):
        run_fusion(config, "CombMNZ")
        monkeypatch.setattr(experiment, "run_trec_eval", lambda qrel_file, result, all_measures=False: "map\tall\t0.5\n")
        config = config.model_copy(update={"qrel_file": tmp_path / "qrels.txt"})

        written = evaluate_results(config)

        assert [p.name for p in written] == ["run1-CombMNZ.eval"]
        assert written[0].read_text() == "map\tall\t0.5\n"

    def test_requires_qrel_file(self, config):
        with pytest.raises(ConfigError):
            evaluate_results(config)
