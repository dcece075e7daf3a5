# clubvote/database/models.py

from clubvote import db

# Persisted kinds. Timestamps are epoch milliseconds (BigInteger).


class Member(db.Model):
    __tablename__ = 'members'
    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    phone_number = db.Column(db.String(20), unique=True, nullable=False)
    membership_number = db.Column(db.String(40), unique=True, nullable=False)
    is_eligible = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.BigInteger, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False)


class Admin(db.Model):
    __tablename__ = 'admins'
    id = db.Column(db.String(64), primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)  # argon2id
    is_default_password = db.Column(db.Boolean, nullable=False, default=True)
    name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(254), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.BigInteger, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False)


class Session(db.Model):
    __tablename__ = 'sessions'
    id = db.Column(db.String(64), primary_key=True)  # opaque token
    owner_type = db.Column(db.String(10), nullable=False)  # 'member' | 'admin'
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.BigInteger, nullable=False)
    expires_at = db.Column(db.BigInteger, nullable=False)
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)


class Position(db.Model):
    __tablename__ = 'positions'
    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.BigInteger, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False)

    candidates = db.relationship('Candidate', backref='position', lazy=True)


class Candidate(db.Model):
    __tablename__ = 'candidates'
    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    position_id = db.Column(db.String(64), db.ForeignKey('positions.id'), nullable=False)
    photo = db.Column(db.String(255), nullable=True)
    info = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.BigInteger, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False)


class Vote(db.Model):
    __tablename__ = 'votes'
    id = db.Column(db.String(64), primary_key=True)
    # One vote per member, enforced by the database as well as the ledger lock
    member_id = db.Column(db.String(64), db.ForeignKey('members.id'), unique=True, nullable=False)
    timestamp = db.Column(db.BigInteger, nullable=False)
    votes = db.Column(db.JSON, nullable=False)  # {position_id: candidate_id}

    def __repr__(self):
        return f'<Vote {self.id} by Member {self.member_id}>'


class ElectionStatus(db.Model):
    __tablename__ = 'election_status'
    id = db.Column(db.Integer, primary_key=True)  # always 1
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    start_time = db.Column(db.BigInteger, nullable=True)
    end_time = db.Column(db.BigInteger, nullable=True)
    duration = db.Column(db.BigInteger, nullable=False)
