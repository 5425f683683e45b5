from flask import current_app
from sqlalchemy import case, func, update
from sqlalchemy.exc import IntegrityError

from errors import (InsufficientPointsError, NotFoundError, PermanentError,
                    atomic, data_access)
from models import db, PointsBalance, Reward, Transaction, TRANSACTION_TYPES, utcnow

USER_POINTS_REWARD_ID = 0


def _find_balance(user_id):
    return PointsBalance.query.filter_by(user_id=user_id).first()


def _get_reward(reward_id):
    reward = db.session.get(Reward, reward_id)
    if reward is None or not reward.is_available:
        raise NotFoundError(f'Reward {reward_id} not found')
    return reward


@data_access('Error creating transaction')
def create_transaction(user_id, type, amount, description):
    if type not in TRANSACTION_TYPES:
        raise PermanentError(f'Unknown transaction type: {type}')

    with atomic():
        transaction = Transaction(user_id=user_id, type=type, amount=amount, description=description)
        db.session.add(transaction)
        db.session.flush()
    return transaction


@data_access('Error getting or creating reward')
def get_or_create_reward(user_id):
    balance = _find_balance(user_id)
    if balance is not None:
        return balance

    with atomic():
        try:
            # Savepoint, so a lost insert race leaves the outer transaction usable
            with db.session.begin_nested():
                balance = PointsBalance(user_id=user_id, points=0)
                db.session.add(balance)
                db.session.flush()
        except IntegrityError:
            # Another request inserted the row first (user_id is unique)
            balance = _find_balance(user_id)
            if balance is None:
                raise NotFoundError(f'User {user_id} not found')
    return balance


@data_access('Error updating reward points')
def update_reward_points(user_id, points_to_add):
    with atomic():
        balance = get_or_create_reward(user_id)
        db.session.execute(
            update(PointsBalance)
            .where(PointsBalance.user_id == user_id)
            .values(points=PointsBalance.points + points_to_add, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(balance)
    return balance


@data_access('Error fetching reward transactions')
def get_reward_transactions(user_id, limit=None):
    if limit is None:
        limit = current_app.config['TRANSACTION_HISTORY_LIMIT']
    transactions = (Transaction.query
                    .filter_by(user_id=user_id)
                    .order_by(Transaction.date.desc(), Transaction.id.desc())
                    .limit(limit)
                    .all())
    return [t.to_dict() for t in transactions]


@data_access('Error computing user balance')
def get_user_balance(user_id):
    # Earned rows add, everything else subtracts; summed over the whole history
    signed_amount = case(
        (Transaction.type.like('earned%'), Transaction.amount),
        else_=-Transaction.amount,
    )
    total = (db.session.query(func.coalesce(func.sum(signed_amount), 0))
             .filter(Transaction.user_id == user_id)
             .scalar())
    return max(int(total), 0)


@data_access('Error fetching available rewards')
def get_available_rewards(user_id):
    user_points = {
        'id': USER_POINTS_REWARD_ID,
        'name': 'Your Points',
        'cost': get_user_balance(user_id),
        'description': 'Redeem your earned points',
        'collectionInfo': 'Points earned from reporting and collecting waste',
    }
    catalog = Reward.query.filter_by(is_available=True).order_by(Reward.id).all()
    return [user_points] + [reward.to_dict() for reward in catalog]


@data_access('Error redeeming reward')
def redeem_reward(user_id, reward_id):
    with atomic():
        balance = get_or_create_reward(user_id)

        if reward_id == USER_POINTS_REWARD_ID:
            # Redeem all points: lock the row so the logged amount matches what was zeroed
            balance = (PointsBalance.query
                       .filter_by(user_id=user_id)
                       .with_for_update()
                       .populate_existing()
                       .one())
            redeemed = balance.points
            balance.points = 0
            create_transaction(user_id, 'redeemed', redeemed, f'Redeemed all points: {redeemed}')
            description = f'all points ({redeemed})'
        else:
            reward = _get_reward(reward_id)

            # Check and debit in one statement, so concurrent redemptions cannot overdraw
            result = db.session.execute(
                update(PointsBalance)
                .where(PointsBalance.user_id == user_id, PointsBalance.points >= reward.cost)
                .values(points=PointsBalance.points - reward.cost, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InsufficientPointsError(f'Insufficient points for {reward.name}')
            db.session.refresh(balance)
            create_transaction(user_id, 'redeemed', reward.cost, f'Redeemed: {reward.name}')
            description = f'{reward.name} ({reward.cost} points)'

    current_app.logger.info(f'Transaction: user {user_id} redeemed {description}.')
    return balance


@data_access('Error saving reward')
def save_reward(user_id, amount):
    if amount <= 0:
        raise PermanentError('Reward amount must be positive')

    with atomic():
        balance = update_reward_points(user_id, amount)
        create_transaction(user_id, 'earned_collect', amount, 'Points earned for collecting waste')
    return balance
