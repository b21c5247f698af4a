import pytest

from interrogative.data.learning_store import ALL, LearningLibraryIndex
from interrogative.data.models import Difficulty


@pytest.fixture
def library(clock, config):
    index = LearningLibraryIndex(clock=clock, config=config)
    index.initialize_data()
    return index


def test_initialize_loads_catalogue_once(library):
    assert [v.id for v in library.state.videos] == ["1", "2", "3", "4"]
    assert [d.id for d in library.state.documents] == ["1", "2", "3", "4"]
    assert not library.initialize_data()


def test_bookmark_toggle_is_symmetric(library):
    assert library.toggle_video_bookmark("3")
    assert library.toggle_video_bookmark("1")
    assert library.state.bookmarked_videos == ["3", "1"]
    assert not library.toggle_video_bookmark("3")
    assert library.state.bookmarked_videos == ["1"]

    assert library.toggle_document_bookmark("2")
    assert not library.toggle_document_bookmark("2")
    assert library.state.bookmarked_documents == []


def test_bookmarked_items_follow_catalogue_order(library):
    library.toggle_video_bookmark("4")
    library.toggle_video_bookmark("2")
    library.toggle_video_bookmark("missing")
    assert [v.id for v in library.get_bookmarked_videos()] == ["2", "4"]

    library.toggle_document_bookmark("3")
    assert [d.title for d in library.get_bookmarked_documents()] == ["SANS Malware Analysis Fundamentals"]


def test_search_matches_title_description_and_tags(library):
    library.set_search_query("MALWARE")
    assert [v.id for v in library.get_filtered_videos()] == ["3"]
    assert [d.id for d in library.get_filtered_documents()] == ["3"]

    library.set_search_query("nist")
    assert [d.id for d in library.get_filtered_documents()] == ["1", "4"]

    library.set_search_query("programming")
    assert [v.id for v in library.get_filtered_videos()] == ["4"]


def test_difficulty_filter_combines_with_search(library):
    library.set_selected_filter(Difficulty.INTERMEDIATE)
    assert [v.id for v in library.get_filtered_videos()] == ["3", "4"]
    assert [d.id for d in library.get_filtered_documents()] == ["1", "4"]

    library.set_search_query("ethical")
    assert [v.id for v in library.get_filtered_videos()] == ["4"]

    library.set_selected_filter("Advanced")
    library.set_search_query("")
    assert [d.id for d in library.get_filtered_documents()] == ["3"]
    assert library.get_filtered_videos() == []

    library.set_selected_filter(ALL)
    assert len(library.get_filtered_videos()) == 4


def test_unknown_difficulty_rejected(library):
    with pytest.raises(ValueError):
        library.set_selected_filter("Expert")
    assert library.state.selected_filter == ALL


def test_ephemeral_setters_do_not_persist(clock, config, memory):
    library = LearningLibraryIndex(persistence=memory, clock=clock, config=config)
    seen = []
    library.subscribe(seen.append)

    library.set_active_tab("Documents")
    library.set_active_tab("Documents")
    library.set_loading(True)
    library.set_error("offline")

    assert len(seen) == 3
    assert seen[-1].error == "offline"
    assert memory.save_count == 0


def test_set_videos_validates_mappings(library):
    library.set_videos([{"id": "v9", "title": "Custom", "difficulty": "Advanced"}])
    videos = library.state.videos
    assert len(videos) == 1
    assert videos[0].difficulty == Difficulty.ADVANCED
