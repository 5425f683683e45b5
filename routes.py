from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from errors import PermanentError
from ledger import get_available_rewards, get_reward_transactions, get_user_balance, redeem_reward
from notifications import get_unread_notifications, mark_notification_as_read
from workflow import (complete_collection, create_report, get_recent_reports,
                      get_waste_collection_tasks, update_task_status)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _json_body(*required):
    data = request.get_json(silent=True) or {}
    missing = [field for field in required if not data.get(field)]
    if missing:
        raise PermanentError(f"Missing fields: {', '.join(missing)}")
    return data


def _limit(default):
    return request.args.get('limit', default, type=int)


@api_bp.route('/health')
def health():
    return jsonify({'status': 'ok'})


# --- BALANCE & HISTORY ---

# Total shown in the header
@api_bp.route('/balance')
@login_required
def balance():
    return jsonify({'balance': get_user_balance(current_user.id)})


@api_bp.route('/transactions')
@login_required
def transactions():
    return jsonify({'data': get_reward_transactions(current_user.id)})


# --- REWARDS ---

@api_bp.route('/rewards')
@login_required
def rewards():
    rewards_list = get_available_rewards(current_user.id)
    return jsonify({'status': 'success', 'count': len(rewards_list), 'data': rewards_list})


@api_bp.route('/rewards/<int:reward_id>/redeem', methods=['POST'])
@login_required
def redeem(reward_id):
    redeem_reward(current_user.id, reward_id)
    return jsonify({'status': 'success', 'balance': get_user_balance(current_user.id)})


# --- REPORTS ---

@api_bp.route('/reports', methods=['GET', 'POST'])
@login_required
def reports():
    if request.method == 'POST':
        data = _json_body('location', 'wasteType', 'amount')
        report = create_report(
            current_user.id,
            data['location'],
            data['wasteType'],
            data['amount'],
            image_url=data.get('imageUrl'),
            verification_result=data.get('verificationResult'),
        )
        return jsonify({'status': 'success', 'data': report.to_dict()}), 201

    return jsonify({'data': [report.to_dict() for report in get_recent_reports(_limit(10))]})


# --- COLLECTION TASKS ---

@api_bp.route('/tasks')
@login_required
def tasks():
    return jsonify({'data': get_waste_collection_tasks(_limit(20))})


@api_bp.route('/tasks/<int:report_id>/status', methods=['POST'])
@login_required
def task_status(report_id):
    data = _json_body('status')
    # Taking a task assigns it to whoever is signed in
    collector_id = current_user.id if data.get('assign') else None
    report = update_task_status(report_id, data['status'], collector_id)
    return jsonify({'status': 'success', 'data': report.to_dict()})


@api_bp.route('/tasks/<int:report_id>/collect', methods=['POST'])
@login_required
def collect(report_id):
    data = request.get_json(silent=True) or {}
    collected = complete_collection(report_id, current_user.id, data.get('verificationResult'))
    return jsonify({'status': 'success', 'data': collected.to_dict()}), 201


# --- NOTIFICATIONS ---

@api_bp.route('/notifications')
@login_required
def notifications():
    unread = get_unread_notifications(current_user.id)
    return jsonify({'count': len(unread), 'data': [n.to_dict() for n in unread]})


@api_bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@login_required
def read_notification(notification_id):
    mark_notification_as_read(notification_id, current_user.id)
    return jsonify({'status': 'success'})
