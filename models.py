from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime, timezone

# 1. Create the database instance (we will connect it to the app later)
db = SQLAlchemy()

TRANSACTION_TYPES = ('earned_report', 'earned_collect', 'redeemed')


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_day(value):
    # YYYY-MM-DD
    return value.strftime('%Y-%m-%d') if value else None


# --- The MODELS (Database Tables) ---

# Class 1: User Table
# Identity comes from the OAuth provider, 'subject' is the token subject
class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    subject = db.Column(db.String(255), unique=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    # Relationships
    balance = db.relationship('PointsBalance', backref='owner', uselist=False, lazy=True)
    reports = db.relationship('Report', backref='reporter', lazy=True, foreign_keys='Report.user_id')
    transactions = db.relationship('Transaction', backref='owner', lazy=True)
    notifications = db.relationship('Notification', backref='owner', lazy=True)

    def to_dict(self):
        return {'id': self.id, 'subject': self.subject, 'email': self.email, 'name': self.name}

    def __repr__(self):
        return f'<User {self.email}>'


# Class 2: Report Table
# A waste sighting; status starts at 'pending', collectors move it along
class Report(db.Model):
    __tablename__ = 'reports'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    location = db.Column(db.Text, nullable=False)
    waste_type = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.String(255), nullable=False)  # e.g. "5 kg"
    image_url = db.Column(db.Text)
    verification_result = db.Column(db.JSON)
    status = db.Column(db.String(255), nullable=False, default='pending')
    collector_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'location': self.location,
            'wasteType': self.waste_type,
            'amount': self.amount,
            'imageUrl': self.image_url,
            'verificationResult': self.verification_result,
            'status': self.status,
            'collectorId': self.collector_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Report {self.id} {self.status}>'


# Class 3: CollectedWaste Table
# One row per fulfilled report (report_id is unique)
class CollectedWaste(db.Model):
    __tablename__ = 'collected_wastes'
    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey('reports.id'), nullable=False, unique=True)
    collector_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    collection_date = db.Column(db.DateTime, default=utcnow, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='verified')
    verification_result = db.Column(db.JSON)

    report = db.relationship('Report', backref='collections', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'reportId': self.report_id,
            'collectorId': self.collector_id,
            'collectionDate': format_day(self.collection_date),
            'status': self.status,
        }


# Class 4: Reward Table
# The reward catalog, users only read it
class Reward(db.Model):
    __tablename__ = 'rewards'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    cost = db.Column(db.Integer, nullable=False)  # Price in points
    description = db.Column(db.Text)
    collection_info = db.Column(db.Text, nullable=False)
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'cost': self.cost,
            'description': self.description,
            'collectionInfo': self.collection_info,
        }


# Class 5: PointsBalance Table
# Running points total, exactly one row per user
class PointsBalance(db.Model):
    __tablename__ = 'points_balances'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint('points >= 0', name='check_non_negative_points'),
    )

    def to_dict(self):
        return {'userId': self.user_id, 'points': self.points}


# Class 6: Transaction Table
# History of points earned or spent, rows are never updated
class Transaction(db.Model):
    __tablename__ = 'transactions'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # earned_report, earned_collect, redeemed
    amount = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text)
    date = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'amount': self.amount,
            'description': self.description,
            'date': format_day(self.date),
        }


# Class 7: Notification Table
class Notification(db.Model):
    __tablename__ = 'notifications'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(255), nullable=False)  # reward, system, ...
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'message': self.message,
            'type': self.type,
            'isRead': self.is_read,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
