from __future__ import annotations
from typing import Iterable, List, Tuple

from .models import DocumentHandle, FlatPage


def flatten(documents: Iterable[DocumentHandle]) -> Tuple[FlatPage, ...]:
    """
    Concatenate the pages of loaded documents, document-major then page-minor.
    Failed entries never reach here, so they contribute nothing and do not
    disturb the numbering of their neighbours.
    """
    pages: List[FlatPage] = []
    for doc_index, doc in enumerate(documents):
        for page_number in range(1, doc.page_count + 1):
            pages.append(FlatPage(
                document_index=doc_index,
                page_number=page_number,
                page_count=doc.page_count,
                display_name=doc.display_name,
            ))
    return tuple(pages)
