"""Unit tests for the content repository, analytics and the event bus."""
import pytest

from pathway.services.events import EventBus, ProgressEvent, ProgressEventType
from pathway.utils.errors import NotFoundError, UnauthorizedError, ValidationError
from tests.sample_content import sample_path_definition


@pytest.mark.unit
class TestContentRepository:
    def test_save_and_get(self, engine):
        saved = engine.content.save_path(sample_path_definition(), actor_id="creator-1")
        assert saved.created_at is not None
        loaded = engine.content.get_path("path-1")
        assert loaded.milestones[1].quiz_ref.quiz_id == "q2"
        assert engine.content.get_milestone("path-1", "m3").quiz_ref.passing_score == 60

    def test_invalid_definition(self, engine):
        data = sample_path_definition()
        data["milestones"][1]["order"] = 7
        with pytest.raises(ValidationError) as exc:
            engine.content.save_path(data)
        assert exc.value.details["errors"]

    def test_only_creator_may_replace(self, engine):
        engine.content.save_path(sample_path_definition())
        hijack = sample_path_definition(creator_id="intruder")
        with pytest.raises(UnauthorizedError):
            engine.content.save_path(hijack, actor_id="intruder")

    def test_creator_update_keeps_created_at(self, engine):
        first = engine.content.save_path(sample_path_definition())
        data = sample_path_definition()
        data["title"] = "Renamed"
        second = engine.content.save_path(data, actor_id="creator-1")
        assert second.title == "Renamed"
        assert second.created_at == first.created_at

    def test_listing(self, engine):
        engine.content.save_path(sample_path_definition())
        private = sample_path_definition(creator_id="other")
        private.update(id="path-2", is_public=False)
        engine.content.save_path(private)
        assert [p.id for p in engine.content.list_public_paths()] == ["path-1"]
        assert [p.id for p in engine.content.list_paths_by_creator("other")] == ["path-2"]

    def test_missing(self, engine):
        with pytest.raises(NotFoundError):
            engine.content.get_path("nope")
        with pytest.raises(NotFoundError):
            engine.content.get_quiz("nope")


@pytest.mark.unit
class TestAnalytics:
    def test_empty_progress(self, seeded_engine):
        analytics = seeded_engine.analytics.generate("path-1", "u1")
        assert analytics.total_videos == 4
        assert analytics.completed_videos == 0
        assert analytics.total_quizzes == 2
        assert analytics.average_quiz_score == 0
        assert analytics.last_accessed_at is None

    def test_watch_time_summed(self, seeded_engine):
        seeded_engine.videos.update_position("u1", "v1", 120, watched_ms=60_000)
        seeded_engine.videos.mark_completed("u1", "v2", watched_ms=30_000)
        analytics = seeded_engine.analytics.generate("path-1", "u1")
        assert analytics.total_time_spent_ms == 90_000
        assert analytics.completed_videos == 1

    def test_generate_does_not_write(self, seeded_engine):
        seeded_engine.analytics.generate("path-1", "u1")
        assert seeded_engine.analytics.get("path-1", "u1") is None


@pytest.mark.unit
class TestVideoProgress:
    def test_completed_never_reverts(self, engine):
        done = engine.videos.mark_completed("u1", "v1", position=300)
        after = engine.videos.update_position("u1", "v1", 10)
        assert after.completed is True
        assert after.completed_at == done.completed_at
        assert after.last_position == 10

    def test_initialize_keeps_existing(self, engine):
        engine.videos.update_position("u1", "v1", 42)
        assert engine.videos.initialize("u1", "v1").last_position == 42
        assert engine.videos.initialize("u1", "v2").last_position == 0
        assert engine.videos.is_video_completed("u1", "v2") is False


@pytest.mark.unit
class TestEventBus:
    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("notifier down")

        bus.subscribe(ProgressEventType.PATH_COMPLETED, broken)
        bus.subscribe(ProgressEventType.PATH_COMPLETED, seen.append)
        event = ProgressEvent(type=ProgressEventType.PATH_COMPLETED, user_id="u", path_id="p")
        assert bus.publish(event) == 1
        assert seen == [event]

    def test_only_matching_type_delivered(self):
        bus = EventBus()
        seen = []
        bus.subscribe("milestone_completed", seen.append)
        bus.publish(ProgressEvent(type=ProgressEventType.QUIZ_PASSED, user_id="u", path_id="p"))
        assert seen == []


@pytest.mark.unit
class TestBundledSample:
    def test_seed_file_is_valid(self):
        import json
        from pathlib import Path

        from pathway.schemas.quiz_schemas import QuestionBank
        from pathway.services.content_service import parse_path

        payload = json.loads((Path(__file__).parents[2] / "scripts" / "sample_path.json").read_text(encoding="utf-8"))
        path = parse_path({**payload["path"], "creator_id": "1"})
        banks = {QuestionBank.model_validate(q).id for q in payload["quizzes"]}
        assert {m.quiz_ref.quiz_id for m in path.milestones if m.quiz_ref} == banks
        assert path.milestone("py-m3").quiz_ref.passing_score == 70


@pytest.mark.unit
class TestPathVisibility:
    def test_private_path_only_visible_to_creator(self, engine):
        data = sample_path_definition(creator_id="owner")
        data["is_public"] = False
        engine.content.save_path(data)
        assert engine.content.get_visible_path("path-1", "owner").id == "path-1"
        with pytest.raises(NotFoundError):
            engine.content.get_visible_path("path-1", "someone-else")

    def test_public_path_visible_to_all(self, engine):
        engine.content.save_path(sample_path_definition())
        assert engine.content.get_visible_path("path-1", "anyone").is_public is True
