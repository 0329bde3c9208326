# Repository flows against an in-memory MongoDB
import datetime

import pytest
from pymongo.errors import AutoReconnect

from will_service.app.config import settings
from will_service.app.service.exceptions import (
    WillNotFoundError, ExecutionPreconditionError, ConcurrencyConflictError, PersonNotFoundError,
    WillValidationError,
)
from will_service.infrastructure.database import will_store as store


@pytest.fixture
def complete_steps(testator_data, family_data, assets_data, distribution_data, executor_data):
    return [
        ("personal-info", testator_data),
        ("family", family_data),
        ("assets", assets_data),
        ("distribution", distribution_data),
        ("executors", {"executors": [executor_data]}),
    ]


class ReplyLostCollection:
    """Commits the next `lost_replies` compare-and-set writes, then fails as if the reply was dropped."""

    def __init__(self, collection, lost_replies=1):
        self._collection = collection
        self.lost_replies = lost_replies

    def __getattr__(self, name):
        return getattr(self._collection, name)

    async def find_one_and_update(self, *args, **kwargs):
        result = await self._collection.find_one_and_update(*args, **kwargs)
        if self.lost_replies:
            self.lost_replies -= 1
            raise AutoReconnect("connection closed before reply")
        return result


class ReplyLostDatabase:
    def __init__(self, db):
        self.wills = ReplyLostCollection(db[settings.WILLS_COLLECTION])

    def __getitem__(self, name):
        return self.wills


async def fill_all_sections(db, will_id, steps):
    will = None
    for section, data in steps:
        will = await store.update_will_section(db, will_id, section, data, user_id="U1")
    return will


async def test_new_will_is_empty_draft(mongo_db):
    will = await store.create_will(mongo_db, "U1")

    assert will.status == "draft"
    assert will.progress.percent_complete == 0
    stored = await store.get_will_by_id(mongo_db, will.id, "U1")
    assert stored.id == will.id
    assert stored.version == 1


async def test_single_executor_gives_twenty_percent(mongo_db, executor_data):
    will = await store.create_will(mongo_db, "U1")

    updated = await store.update_will_section(mongo_db, will.id, "executors", [executor_data], user_id="U1")

    assert updated.progress.completed_sections == ["executors"]
    assert updated.progress.percent_complete == 20
    assert updated.progress.current_section == "executors"
    assert updated.sections.executors[0].relationship == "spouse"


async def test_all_sections_complete_the_will(mongo_db, complete_steps):
    will = await store.create_will(mongo_db, "U1")

    updated = await fill_all_sections(mongo_db, will.id, complete_steps)

    assert updated.status == "completed"
    assert updated.progress.percent_complete == 100
    assert updated.version == 6


async def test_execute_completed_will(mongo_db, complete_steps, witness_data):
    will = await store.create_will(mongo_db, "U1")
    await fill_all_sections(mongo_db, will.id, complete_steps)

    executed = await store.execute_will(mongo_db, will.id, witness_data, "U1")

    assert executed.status == "executed"
    assert executed.executed_at is not None
    assert executed.witness_info.witness1.first_name == "Wendy"
    assert executed.witness_info.execution_date == datetime.date(2026, 10, 1)
    stored = await store.get_will_by_id(mongo_db, will.id, "U1")
    assert stored.status == "executed"


async def test_execute_incomplete_will_changes_nothing(mongo_db, complete_steps, witness_data):
    will = await store.create_will(mongo_db, "U1")
    await fill_all_sections(mongo_db, will.id, complete_steps[:4])
    before = await store.get_will_by_id(mongo_db, will.id, "U1")
    assert before.progress.percent_complete == 80

    with pytest.raises(ExecutionPreconditionError):
        await store.execute_will(mongo_db, will.id, witness_data, "U1")

    after = await store.get_will_by_id(mongo_db, will.id, "U1")
    assert after.status == "draft"
    assert after.witness_info is None
    assert after.version == before.version


async def test_execute_twice_only_first_succeeds(mongo_db, complete_steps, witness_data):
    will = await store.create_will(mongo_db, "U1")
    await fill_all_sections(mongo_db, will.id, complete_steps)
    await store.execute_will(mongo_db, will.id, witness_data, "U1")

    with pytest.raises(ExecutionPreconditionError):
        await store.execute_will(mongo_db, will.id, witness_data, "U1")


async def test_other_user_cannot_see_or_change_will(mongo_db, executor_data):
    will = await store.create_will(mongo_db, "U1")

    assert await store.get_will_by_id(mongo_db, will.id, "U2") is None
    with pytest.raises(WillNotFoundError):
        await store.update_will_section(mongo_db, will.id, "executors", [executor_data], user_id="U2")
    assert await store.delete_will(mongo_db, will.id, "U2") is False
    assert await store.get_wills_by_user_id(mongo_db, "U2") == []


async def test_family_update_leaves_other_sections_alone(mongo_db, executor_data, family_data):
    will = await store.create_will(mongo_db, "U1")
    with_executor = await store.update_will_section(mongo_db, will.id, "executors", [executor_data], user_id="U1")

    updated = await store.update_will_section(mongo_db, will.id, "family", family_data, user_id="U1")

    assert updated.sections.executors == with_executor.sections.executors
    assert updated.sections.spouse.first_name == "Bob"


async def test_personal_info_round_trip(mongo_db, testator_data):
    will = await store.create_will(mongo_db, "U1")
    await store.update_will_section(mongo_db, will.id, "personal-info", testator_data, user_id="U1")

    stored = await store.get_will_by_id(mongo_db, will.id, "U1")

    assert stored.model_dump(by_alias=True, mode="json", exclude_none=True)["sections"]["testator"] == {
        **testator_data,
        "address": {**testator_data["address"], "country": "United States"},
    }
    assert "personal-info" in stored.progress.completed_sections


async def test_removing_content_keeps_completed_status(mongo_db, complete_steps):
    will = await store.create_will(mongo_db, "U1")
    await fill_all_sections(mongo_db, will.id, complete_steps)
    stored = await store.get_will_by_id(mongo_db, will.id, "U1")
    executor_id = stored.sections.executors[0].id

    updated = await store.remove_person(mongo_db, will.id, "executors", executor_id, "U1")

    assert updated.sections.executors == []
    assert updated.progress.percent_complete == 80
    assert updated.status == "completed"


async def test_child_minor_flag_is_recomputed_on_read(mongo_db):
    will = await store.create_will(mongo_db, "U1")
    await store.update_will_section(mongo_db, will.id, "children", [
        {"firstName": "Old", "lastName": "Kid", "dateOfBirth": "1999-01-01"},
    ], user_id="U1")
    # A flag written long ago that is no longer true.
    await mongo_db[settings.WILLS_COLLECTION].update_one(
        {"id": will.id}, {"$set": {"sections.children.0.is_minor": True}}
    )

    stored = await store.get_will_by_id(mongo_db, will.id, "U1")

    assert stored.sections.children[0].is_minor is False


async def test_stale_expected_version_is_rejected(mongo_db, executor_data, testator_data):
    will = await store.create_will(mongo_db, "U1")
    await store.update_will_section(mongo_db, will.id, "executors", [executor_data], user_id="U1")

    with pytest.raises(ConcurrencyConflictError):
        await store.update_will_section(
            mongo_db, will.id, "personal-info", testator_data, user_id="U1", expected_version=1
        )

    stored = await store.get_will_by_id(mongo_db, will.id, "U1")
    assert stored.sections.testator is None


async def test_person_operations(mongo_db, executor_data):
    will = await store.create_will(mongo_db, "U1")

    added = await store.add_person(mongo_db, will.id, "guardians", executor_data, "U1")
    guardian_id = added.sections.guardians[0].id
    updated = await store.update_person(mongo_db, will.id, "guardians", guardian_id, {"phone": "555-0100"}, "U1")

    assert updated.sections.guardians[0].phone == "555-0100"
    assert updated.sections.guardians[0].first_name == "Jane"
    assert updated.sections.guardians[0].id == guardian_id

    with pytest.raises(PersonNotFoundError):
        await store.remove_person(mongo_db, will.id, "guardians", "missing", "U1")


async def test_add_asset_counts_towards_progress(mongo_db):
    will = await store.create_will(mongo_db, "U1")

    updated = await store.add_asset(mongo_db, will.id, "personalProperty", {"type": "vehicle", "description": "Car"}, "U1")

    assert updated.sections.personal_property[0].description == "Car"
    assert updated.progress.completed_sections == ["assets"]


async def test_invalid_asset_is_rejected(mongo_db):
    will = await store.create_will(mongo_db, "U1")
    with pytest.raises(WillValidationError):
        await store.add_asset(mongo_db, will.id, "real_property", {"type": "house", "description": "No address"}, "U1")


async def test_chat_photos_and_documents(mongo_db):
    will = await store.create_will(mongo_db, "U1")

    await store.add_chat_message(mongo_db, will.id, {"role": "user", "content": "Hello", "timestamp": "1999-01-01"}, "U1")
    await store.add_photo(mongo_db, will.id, {"url": "https://files/p.jpg", "size": 2048, "name": "p.jpg"}, "U1")
    updated = await store.set_document_reference(mongo_db, will.id, "willPdf", "https://files/will.pdf", "U1")

    assert updated.chat_history[0].content == "Hello"
    assert updated.chat_history[0].timestamp.year != 1999
    assert updated.photos[0].size == 2048
    assert updated.documents.will_pdf == "https://files/will.pdf"


async def test_list_search_and_statistics(mongo_db, complete_steps):
    first = await store.create_will(mongo_db, "U1")
    await store.create_will(mongo_db, "U1", "NY")
    await store.create_will(mongo_db, "U2")
    await fill_all_sections(mongo_db, first.id, complete_steps)

    mine = await store.get_wills_by_user_id(mongo_db, "U1")
    assert {w.user_id for w in mine} == {"U1"}
    assert len(mine) == 2

    drafts = await store.search_wills(mongo_db, user_id="U1", status="draft", limit=1)
    assert drafts.total == 1
    assert drafts.pages == 1
    assert drafts.wills[0].state_compliance == "NY"

    stats = await store.get_will_statistics(mongo_db)
    assert stats.total_wills == 3
    assert stats.draft_wills == 2
    assert stats.completed_wills == 1
    assert stats.executed_wills == 0
    assert stats.average_completion_days == 0


async def test_delete_will(mongo_db):
    will = await store.create_will(mongo_db, "U1")

    assert await store.delete_will(mongo_db, will.id, "U1") is True
    assert await store.get_will_by_id(mongo_db, will.id, "U1") is None


async def test_add_person_after_lost_reply_appends_once(mongo_db, executor_data):
    will = await store.create_will(mongo_db, "U1")
    flaky_db = ReplyLostDatabase(mongo_db)

    updated = await store.add_person(flaky_db, will.id, "executors", executor_data, "U1")

    assert len(updated.sections.executors) == 1
    assert flaky_db.wills.lost_replies == 0
    stored = await store.get_will_by_id(mongo_db, will.id, "U1")
    assert [p.id for p in stored.sections.executors] == [updated.sections.executors[0].id]
    assert stored.version == 2


async def test_execute_after_lost_reply_reports_success(mongo_db, complete_steps, witness_data):
    will = await store.create_will(mongo_db, "U1")
    await fill_all_sections(mongo_db, will.id, complete_steps)

    executed = await store.execute_will(ReplyLostDatabase(mongo_db), will.id, witness_data, "U1")

    assert executed.status == "executed"
    stored = await store.get_will_by_id(mongo_db, will.id, "U1")
    assert stored.status == "executed"
    assert stored.version == 7
