from flask import current_app

from errors import AlreadyCollectedError, NotFoundError, atomic, data_access
from ledger import create_transaction, save_reward, update_reward_points
from models import db, CollectedWaste, Report, User
from notifications import create_notification


# --- USERS ---

@data_access('Error creating user')
def create_user(email, name, subject=None):
    with atomic():
        user = User(email=email, name=name, subject=subject)
        db.session.add(user)
        db.session.flush()
    current_app.logger.info(f'New user registered: {email}')
    return user


@data_access('Error linking user subject')
def attach_subject(user, subject):
    with atomic():
        user.subject = subject
    return user


@data_access('Error fetching user by email')
def get_user_by_email(email):
    # None simply means "no such user"
    return User.query.filter_by(email=email).first()


# --- REPORTS ---

@data_access('Error creating report')
def create_report(user_id, location, waste_type, amount, image_url=None, verification_result=None):
    # Report, points, ledger row and notification are kept together or not at all
    points_earned = current_app.config['REPORT_POINTS']

    with atomic():
        report = Report(
            user_id=user_id,
            location=location,
            waste_type=waste_type,
            amount=amount,
            image_url=image_url,
            verification_result=verification_result,
            status='pending',
        )
        db.session.add(report)
        db.session.flush()

        update_reward_points(user_id, points_earned)
        create_transaction(user_id, 'earned_report', points_earned, 'Points earned for reporting waste')
        create_notification(user_id, f'You have earned {points_earned} points for reporting waste', 'reward')

    current_app.logger.info(f'User {user_id} reported {waste_type} at {location}, earned {points_earned} points.')
    return report


@data_access('Error fetching recent reports')
def get_recent_reports(limit=10):
    return (Report.query
            .order_by(Report.created_at.desc(), Report.id.desc())
            .limit(limit)
            .all())


# --- COLLECTION TASKS ---

@data_access('Error fetching waste collection tasks')
def get_waste_collection_tasks(limit=20):
    tasks = Report.query.order_by(Report.id).limit(limit).all()
    return [{
        'id': task.id,
        'location': task.location,
        'wasteType': task.waste_type,
        'amount': task.amount,
        'status': task.status,
        'date': task.created_at.strftime('%Y-%m-%d'),
        'collectorId': task.collector_id,
    } for task in tasks]


def _get_report(report_id):
    report = db.session.get(Report, report_id)
    if report is None:
        raise NotFoundError(f'Report {report_id} not found')
    return report


@data_access('Error updating task status')
def update_task_status(report_id, new_status, collector_id=None):
    with atomic():
        report = _get_report(report_id)
        report.status = new_status
        if collector_id is not None:
            report.collector_id = collector_id
    return report


@data_access('Error saving collected waste')
def save_collected_waste(report_id, collector_id, verification_result):
    # Only records the collection: report status and points are separate calls
    with atomic():
        _get_report(report_id)
        if CollectedWaste.query.filter_by(report_id=report_id).first() is not None:
            raise AlreadyCollectedError(f'Report {report_id} was already collected')
        collected_waste = CollectedWaste(
            report_id=report_id,
            collector_id=collector_id,
            status='verified',
            verification_result=verification_result,
        )
        db.session.add(collected_waste)
        db.session.flush()
    return collected_waste


@data_access('Error completing collection')
def complete_collection(report_id, collector_id, verification_result, points=None):
    # Record the pickup, close the task and pay the collector in one transaction
    if points is None:
        points = current_app.config['COLLECTION_POINTS']

    with atomic():
        if _get_report(report_id).status == 'verified':
            raise AlreadyCollectedError(f'Report {report_id} was already collected')
        collected_waste = save_collected_waste(report_id, collector_id, verification_result)
        update_task_status(report_id, 'verified', collector_id)
        save_reward(collector_id, points)

    current_app.logger.info(f'Collector {collector_id} verified report {report_id}, earned {points} points.')
    return collected_waste
