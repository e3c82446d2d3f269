from hms.extensions import db
from .base import TimestampMixin, iso

MESSAGE_TYPES = ('text', 'appointment', 'prescription', 'system')


class Message(db.Model, TimestampMixin):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    receiver_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    message_type = db.Column(db.String(20), nullable=False, default='text')
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)

    sender = db.relationship('User', foreign_keys=[sender_id])
    receiver = db.relationship('User', foreign_keys=[receiver_id])

    def to_dict(self):
        return {
            'id': self.id,
            'sender': _party(self.sender),
            'receiver': _party(self.receiver),
            'message': self.message,
            'message_type': self.message_type,
            'is_read': self.is_read,
            'created_at': iso(self.created_at),
        }


def _party(user):
    if not user:
        return None
    return {'id': user.id, 'first_name': user.first_name, 'last_name': user.last_name, 'role': user.role}
