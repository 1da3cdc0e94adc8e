"""Comparisons between result sets for the same query, based on their judged documents."""

from collections import Counter

from trecfuse.errors import InconsistentInputError
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet


def unique_relevant(qrels: RelevanceTable, *result_sets: ResultSet) -> list[int]:
    """For each set, the number of its relevant documents that appear in no other set."""
    relevant = [qrels.get_relevant(rs) for rs in result_sets]
    seen = Counter(docno for docs in relevant for docno in set(docs))
    return [sum(1 for docno in set(docs) if seen[docno] == 1) for docs in relevant]


def lee_overlap(qrels: RelevanceTable, *result_sets: ResultSet) -> float:
    """Lee's overlap ratio: relevant overlap divided by non-relevant overlap, for exactly two sets.

    Non-relevant here means every document that is not judged relevant.
    A non-relevant overlap of zero is treated as 1.
    """
    if len(result_sets) != 2:
        raise InconsistentInputError("Can only get overlap between 2 result sets")

    first, second = result_sets
    first_relevant = set(qrels.get_relevant(first))
    second_relevant = set(qrels.get_relevant(second))
    first_other = set(first.get_docnos()) - first_relevant
    second_other = set(second.get_docnos()) - second_relevant

    relevant_overlap = 0.0
    if first_relevant or second_relevant:
        common = len(first_relevant & second_relevant)
        relevant_overlap = 2 * common / (len(first_relevant) + len(second_relevant))

    other_overlap = 1.0
    if first_other or second_other:
        common = len(first_other & second_other)
        other_overlap = (2 * common / (len(first_other) + len(second_other))) or 1.0

    return relevant_overlap / other_overlap
