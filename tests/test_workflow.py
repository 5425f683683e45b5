import pytest

import workflow
from errors import AlreadyCollectedError, NotFoundError, PermanentError
from ledger import get_or_create_reward, get_user_balance
from models import db, CollectedWaste, Notification, PointsBalance, Report, Transaction
from workflow import (complete_collection, create_report, create_user, get_recent_reports,
                      get_user_by_email, get_waste_collection_tasks, save_collected_waste,
                      update_task_status)


def test_create_user_and_lookup_by_email(app):
    created = create_user('li@example.com', 'Li', subject='sub-42')

    found = get_user_by_email('li@example.com')
    assert found.id == created.id
    assert found.subject == 'sub-42'
    assert get_user_by_email('nobody@example.com') is None


def test_create_user_duplicate_email_fails(user):
    with pytest.raises(PermanentError):
        create_user(user.email, 'Copy')


def test_created_report_is_most_recent_and_pending(user):
    create_report(user.id, 'Old Town Square', 'plastic', '2 kg')
    report = create_report(user.id, 'River Park', 'glass', '5 kg', image_url='https://img/1.jpg',
                           verification_result={'confidence': 0.9})

    [recent] = get_recent_reports(1)
    assert recent.id == report.id
    assert recent.status == 'pending'
    assert recent.verification_result == {'confidence': 0.9}


def test_create_report_awards_points_with_ledger_and_notification(user):
    create_report(user.id, 'River Park', 'glass', '5 kg')

    assert get_or_create_reward(user.id).points == 10
    assert get_user_balance(user.id) == 10
    [transaction] = Transaction.query.filter_by(user_id=user.id).all()
    assert transaction.type == 'earned_report'
    assert transaction.description == 'Points earned for reporting waste'
    [notification] = Notification.query.filter_by(user_id=user.id).all()
    assert notification.message == 'You have earned 10 points for reporting waste'
    assert notification.type == 'reward'


def test_create_report_rolls_back_when_a_step_fails(user, monkeypatch):
    def broken_notification(*args, **kwargs):
        raise PermanentError('notification store down')

    monkeypatch.setattr(workflow, 'create_notification', broken_notification)

    with pytest.raises(PermanentError):
        create_report(user.id, 'River Park', 'glass', '5 kg')

    assert Report.query.count() == 0
    assert Transaction.query.count() == 0
    assert PointsBalance.query.count() == 0


def test_update_task_status_with_and_without_collector(user, collector):
    report = create_report(user.id, 'River Park', 'glass', '5 kg')

    updated = update_task_status(report.id, 'in_progress', collector.id)
    assert updated.status == 'in_progress'
    assert updated.collector_id == collector.id

    updated = update_task_status(report.id, 'anything goes')
    assert updated.status == 'anything goes'
    assert updated.collector_id == collector.id


def test_update_task_status_unknown_report(app):
    with pytest.raises(NotFoundError):
        update_task_status(404, 'verified')


def test_save_collected_waste_leaves_report_and_ledger_alone(user, collector):
    report = create_report(user.id, 'River Park', 'glass', '5 kg')

    collected = save_collected_waste(report.id, collector.id, {'match': True})

    assert collected.status == 'verified'
    assert collected.collection_date is not None
    assert db.session.get(Report, report.id).status == 'pending'
    assert Transaction.query.filter_by(user_id=collector.id).count() == 0


def test_save_collected_waste_unknown_report(collector):
    with pytest.raises(NotFoundError):
        save_collected_waste(12345, collector.id, None)


def test_complete_collection_verifies_and_pays_collector(user, collector):
    report = create_report(user.id, 'River Park', 'glass', '5 kg')

    complete_collection(report.id, collector.id, {'match': True})

    report = db.session.get(Report, report.id)
    assert report.status == 'verified'
    assert report.collector_id == collector.id
    assert CollectedWaste.query.filter_by(report_id=report.id).count() == 1
    assert get_user_balance(collector.id) == 10
    assert get_or_create_reward(collector.id).points == 10


def test_complete_collection_unknown_report_changes_nothing(collector):
    with pytest.raises(NotFoundError):
        complete_collection(999, collector.id, None)

    assert CollectedWaste.query.count() == 0
    assert Transaction.query.count() == 0


def test_waste_collection_tasks_are_bounded_and_formatted(user):
    for i in range(3):
        create_report(user.id, f'Spot {i}', 'paper', '1 kg')

    tasks = get_waste_collection_tasks(2)

    assert len(tasks) == 2
    assert tasks[0]['location'] == 'Spot 0'
    assert tasks[0]['status'] == 'pending'
    assert len(tasks[0]['date']) == 10
    assert tasks[0]['collectorId'] is None


def test_report_can_only_be_collected_once(user, collector):
    report = create_report(user.id, 'River Park', 'glass', '5 kg')
    complete_collection(report.id, collector.id, None)

    with pytest.raises(AlreadyCollectedError):
        complete_collection(report.id, collector.id, None)
    with pytest.raises(AlreadyCollectedError):
        save_collected_waste(report.id, collector.id, None)

    assert CollectedWaste.query.filter_by(report_id=report.id).count() == 1
    assert get_user_balance(collector.id) == 10
    assert get_or_create_reward(collector.id).points == 10
