import gzip

import pytest

from trecfuse.errors import DataFormatError
from trecfuse.retrieval.topfile import TopFile

RANKING = """\
401 Q0 d1 1 9.0 sysA
401 Q0 d2 2 8.0 sysA
401 Q0 d3 3 7.0 sysA

402 Q0 e1 1 4.0 sysA
402 Q0 e2 2 3.0 sysA
"""


@pytest.fixture
def ranking_file(tmp_path):
    path = tmp_path / "input.sysA"
    path.write_text(RANKING)
    return path


class TestTopFile:

    def test_reads_one_query_at_a_time(self, ranking_file):
        with TopFile(ranking_file) as top:
            first = top.next_result_set()
            second = top.next_result_set()
            assert top.next_result_set() is None
            assert not top.has_more()

        assert (first.qid, first.size()) == ("401", 3)
        assert (second.qid, second.get_docnos()) == ("402", ["e1", "e2"])
        assert first.source == str(ranking_file)

    def test_iteration(self, ranking_file):
        with TopFile(ranking_file) as top:
            assert [rs.qid for rs in top] == ["401", "402"]

    def test_reset_rewinds(self, ranking_file):
        with TopFile(ranking_file) as top:
            list(top)
            top.reset()
            assert top.has_more()
            assert top.next_result_set().qid == "401"

    def test_gzip(self, tmp_path):
        path = tmp_path / "input.sysA.gz"
        with gzip.open(path, "wt") as f:
            f.write(RANKING)
        with TopFile(path) as top:
            assert [rs.size() for rs in top] == [3, 2]

    def test_file_order_trusted(self, tmp_path):
        path = tmp_path / "input.sysB"
        path.write_text("401 Q0 low 1 1.0 sysB\n401 Q0 high 2 5.0 sysB\n")
        with TopFile(path) as top:
            rs = top.next_result_set()
        assert rs.get_docnos() == ["low", "high"]

    def test_presorted_off_sorts_by_score(self, tmp_path):
        path = tmp_path / "input.sysB"
        path.write_text("401 Q0 low 1 1.0 sysB\n401 Q0 high 2 5.0 sysB\n")
        with TopFile(path, presorted=False) as top:
            rs = top.next_result_set()
        assert rs.get_docnos() == ["high", "low"]

    def test_close_on_exit(self, ranking_file):
        with TopFile(ranking_file) as top:
            pass
        assert top._file is None

    def test_malformed_line(self, tmp_path):
        path = tmp_path / "input.bad"
        path.write_text("401 Q0 d1 1 9.0 sysA\n401 Q0 d2\n")
        with TopFile(path) as top:
            with pytest.raises(DataFormatError):
                top.next_result_set()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "input.empty"
        path.write_text("")
        with TopFile(path) as top:
            assert top.next_result_set() is None
