from types import SimpleNamespace

import pytest

from trainingstore.limits import get_store_limits
from trainingstore.pagination import Page, RangeRequest, parse_range_header
from trainingstore.utils.project_locks import ProjectLockRegistry


def test_parse_range_header():
    assert parse_range_header('items=0-9') == RangeRequest(0, 9)
    assert parse_range_header(' items = 5 - 7 ') == RangeRequest(5, 7)
    assert parse_range_header(None) is None
    assert parse_range_header('') is None
    assert parse_range_header('bytes=0-9') is None
    assert parse_range_header('items=9-0') is None
    assert parse_range_header('items=a-b') is None


def test_range_request_rejects_bad_bounds():
    with pytest.raises(ValueError):
        RangeRequest(5, 2)
    assert RangeRequest(3, 3).limit == 1


def test_page_content_range():
    page = Page(items=list(range(10)), total=20, start=0, requested=RangeRequest(0, 9))
    assert page.end == 9
    assert page.content_range() == 'items 0-9/20'
    clamped = Page(items=[1, 2], total=12, start=10, requested=RangeRequest(10, 40))
    assert clamped.content_range() == 'items 10-11/12'
    assert Page(items=[], total=0).content_range() == 'items */0'


def test_limits_read_fresh_from_env(monkeypatch):
    monkeypatch.setenv('LIMIT_SOUND_TRAINING_PER_PROJECT', '7')
    assert get_store_limits().sound_training_items_per_project == 7
    monkeypatch.setenv('LIMIT_SOUND_TRAINING_PER_PROJECT', '3')
    assert get_store_limits().sound_training_items_per_project == 3
    monkeypatch.setenv('LIMIT_SOUND_TRAINING_PER_PROJECT', 'lots')
    assert get_store_limits().sound_training_items_per_project == 100


def test_ceiling_for_project_types(monkeypatch):
    monkeypatch.setenv('LIMIT_NUMBER_TRAINING_PER_PROJECT', '11')
    monkeypatch.setenv('LIMIT_NUMBER_TRAINING_PER_CLASS_PROJECT', '22')
    monkeypatch.setenv('LIMIT_TEXT_TRAINING_PER_PROJECT', '33')
    monkeypatch.setenv('LIMIT_IMAGE_TRAINING_PER_PROJECT', '44')
    monkeypatch.setenv('LIMIT_SOUND_TRAINING_PER_PROJECT', '55')
    limits = get_store_limits()
    assert limits.ceiling_for(SimpleNamespace(type='numbers', crowd_sourced=False)) == 11
    assert limits.ceiling_for(SimpleNamespace(type='numbers', crowd_sourced=True)) == 22
    assert limits.ceiling_for(SimpleNamespace(type='text', crowd_sourced=False)) == 33
    assert limits.ceiling_for(SimpleNamespace(type='images', crowd_sourced=False)) == 44
    assert limits.ceiling_for(SimpleNamespace(type='sounds', crowd_sourced=True)) == 55
    assert limits.class_ceiling_for(SimpleNamespace(type='numbers', crowd_sourced=False)) == 22
    assert limits.class_ceiling_for(SimpleNamespace(type='sounds', crowd_sourced=False)) is None


def test_project_locks_are_released():
    locks = ProjectLockRegistry()
    with locks.hold('p1', timeout=1):
        assert len(locks) == 1
        with locks.hold('p2', timeout=1):
            assert len(locks) == 2
    assert len(locks) == 0


def test_project_lock_times_out():
    locks = ProjectLockRegistry()
    with locks.hold('p1', timeout=1):
        with pytest.raises(TimeoutError):
            with locks.hold('p1', timeout=0.05):
                pass
    assert len(locks) == 0
