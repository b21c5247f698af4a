"""Module learning_store: security videos, documents and the user's bookmarks."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, TypeVar, Union

from pydantic import BaseModel, Field

from interrogative.data.base_store import PersistentStore
from interrogative.data.models import Difficulty, LibraryDocument, Video
from interrogative.data.persistence import SnapshotSchema

logger = logging.getLogger(__name__)

ALL = "All"

Item = TypeVar("Item", Video, LibraryDocument)


class LearningState(BaseModel):
    videos: List[Video] = Field(default_factory=list)
    documents: List[LibraryDocument] = Field(default_factory=list)
    bookmarked_videos: List[str] = Field(default_factory=list)
    bookmarked_documents: List[str] = Field(default_factory=list)
    search_query: str = ""
    selected_filter: str = ALL
    active_tab: str = "Videos"
    is_loading: bool = False
    error: Optional[str] = None


def _matches(item: Union[Video, LibraryDocument], needle: str, difficulty: str) -> bool:
    if needle and not (
        needle in item.title.lower()
        or needle in item.description.lower()
        or any(needle in tag.lower() for tag in item.tags)
    ):
        return False
    return difficulty == ALL or item.difficulty.value == difficulty


class LearningLibraryIndex(PersistentStore):
    """Video/document catalogue with bookmark sets and a difficulty filter."""

    schema = SnapshotSchema(
        "learning-store", 1,
        ("videos", "documents", "bookmarked_videos", "bookmarked_documents"),
    )
    state_model = LearningState
    tag = "LearningStore"

    def set_videos(self, videos: Iterable[Any]) -> None:
        videos = [v if isinstance(v, Video) else Video.model_validate(v) for v in videos]
        self._state = self._state.model_copy(update={"videos": videos})
        self._commit()

    def set_documents(self, documents: Iterable[Any]) -> None:
        documents = [
            d if isinstance(d, LibraryDocument) else LibraryDocument.model_validate(d)
            for d in documents
        ]
        self._state = self._state.model_copy(update={"documents": documents})
        self._commit()

    def toggle_video_bookmark(self, video_id: str) -> bool:
        """Returns True when the video is bookmarked after the call."""
        return self._toggle("bookmarked_videos", video_id)

    def toggle_document_bookmark(self, document_id: str) -> bool:
        return self._toggle("bookmarked_documents", document_id)

    def _toggle(self, field: str, item_id: str) -> bool:
        marks = list(getattr(self._state, field))
        if item_id in marks:
            marks.remove(item_id)
        else:
            marks.append(item_id)
        self._state = self._state.model_copy(update={field: marks})
        self._commit()
        return item_id in marks

    def set_search_query(self, query: str) -> None:
        self._set_ephemeral(search_query=query or "")

    def set_selected_filter(self, difficulty: Union[Difficulty, str, None]) -> None:
        if difficulty is None or difficulty == ALL:
            value = ALL
        else:
            value = Difficulty(difficulty).value
        self._set_ephemeral(selected_filter=value)

    def set_active_tab(self, tab: str) -> None:
        self._set_ephemeral(active_tab=tab)

    def set_loading(self, is_loading: bool) -> None:
        self._set_ephemeral(is_loading=bool(is_loading))

    def set_error(self, error: Optional[str]) -> None:
        self._set_ephemeral(error=error)

    def _set_ephemeral(self, **update: Any) -> None:
        if all(getattr(self._state, k) == v for k, v in update.items()):
            return
        self._state = self._state.model_copy(update=update)
        self._commit(persist=False)

    def get_filtered_videos(self) -> List[Video]:
        return self._filtered(self._state.videos)

    def get_filtered_documents(self) -> List[LibraryDocument]:
        return self._filtered(self._state.documents)

    def _filtered(self, items: List[Item]) -> List[Item]:
        needle = self._state.search_query.strip().lower()
        wanted = self._state.selected_filter
        return [i.model_copy() for i in items if _matches(i, needle, wanted)]

    def get_bookmarked_videos(self) -> List[Video]:
        marked = set(self._state.bookmarked_videos)
        return [v.model_copy() for v in self._state.videos if v.id in marked]

    def get_bookmarked_documents(self) -> List[LibraryDocument]:
        marked = set(self._state.bookmarked_documents)
        return [d.model_copy() for d in self._state.documents if d.id in marked]

    def initialize_data(self) -> bool:
        """Load the built-in catalogue when nothing has been loaded yet."""
        if self._state.videos or self._state.documents:
            return False
        from interrogative.data.seed import demo_documents, demo_videos

        self._state = self._state.model_copy(update={
            "videos": demo_videos(),
            "documents": demo_documents(),
        })
        logger.info("[LearningStore] Loaded built-in catalogue")
        self._commit()
        return True
