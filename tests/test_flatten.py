from playlist import flatten, FlatPage
from conftest import handle


def test_two_documents_concatenate_document_major():
    pages = flatten([handle("a", 3), handle("b", 2)])
    assert [(p.document_index, p.page_number) for p in pages] == [
        (0, 1), (0, 2), (0, 3), (1, 1), (1, 2),
    ]
    assert pages[4] == FlatPage(document_index=1, page_number=2, page_count=2, display_name="b")


def test_length_is_sum_of_page_counts():
    docs = [handle("a", 7), handle("b", 1), handle("c", 4)]
    assert len(flatten(docs)) == sum(d.page_count for d in docs)


def test_each_page_carries_its_document_total_and_name():
    for p in flatten([handle("menu", 2), handle("prices", 5)]):
        assert p.page_count == (2 if p.display_name == "menu" else 5)


def test_no_documents_no_pages():
    assert flatten([]) == ()
