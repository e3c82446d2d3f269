from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy import or_
from hms.extensions import db
from hms.errors import AuthorizationError, NotFoundError, ValidationError
from hms.models import Message, User, MESSAGE_TYPES
from hms.utils.decorators import get_current_user, require_role
from hms.utils.payload import get_json_body, pick, to_int

message_bp = Blueprint('messages', __name__, url_prefix='/api/messages')


def _message_or_404(message_id):
    message = db.session.get(Message, message_id)
    if not message:
        raise NotFoundError('Message not found')
    return message


@message_bp.route('', methods=['GET'])
@jwt_required()
@require_role('admin', 'doctor', 'patient')
def list_messages():
    """
    Query params: box = inbox | sent | all (default all)
    """
    user = get_current_user()
    box = request.args.get('box', 'all')
    query = Message.query
    if box == 'inbox':
        query = query.filter(Message.receiver_id == user.id)
    elif box == 'sent':
        query = query.filter(Message.sender_id == user.id)
    else:
        query = query.filter(or_(Message.sender_id == user.id, Message.receiver_id == user.id))
    messages = query.order_by(Message.created_at.desc(), Message.id.desc()).all()
    return jsonify({'success': True, 'data': [m.to_dict() for m in messages], 'total': len(messages)}), 200


@message_bp.route('', methods=['POST'])
@jwt_required()
@require_role('admin', 'doctor', 'patient')
def send_message():
    """Body: {receiverId, message, messageType?}"""
    user = get_current_user()
    data = get_json_body()

    receiver_id = to_int(pick(data, 'receiverId', 'receiver_id'), 'receiverId')
    text = data.get('message')
    message_type = pick(data, 'messageType', 'message_type', default='text')
    if receiver_id is None:
        raise ValidationError('receiverId is required')
    if not isinstance(text, str) or not text.strip():
        raise ValidationError('message is required')
    if message_type not in MESSAGE_TYPES:
        raise ValidationError(f"messageType must be one of: {', '.join(MESSAGE_TYPES)}")
    receiver = db.session.get(User, receiver_id)
    if not receiver or not receiver.is_active:
        raise NotFoundError('Receiver not found')

    message = Message(sender_id=user.id, receiver_id=receiver.id,
                      message=text.strip(), message_type=message_type)
    db.session.add(message)
    db.session.commit()
    return jsonify({
        'success': True,
        'message': 'Message sent',
        'data': message.to_dict()
    }), 201


@message_bp.route('/<int:message_id>/read', methods=['PUT'])
@jwt_required()
@require_role('admin', 'doctor', 'patient')
def mark_read(message_id):
    user = get_current_user()
    message = _message_or_404(message_id)
    if message.receiver_id != user.id:
        raise AuthorizationError('Only the receiver can mark a message as read')
    message.is_read = True
    db.session.commit()
    return jsonify({'success': True, 'data': message.to_dict()}), 200


@message_bp.route('/<int:message_id>', methods=['DELETE'])
@jwt_required()
@require_role('admin', 'doctor', 'patient')
def delete_message(message_id):
    user = get_current_user()
    message = _message_or_404(message_id)
    if message.sender_id != user.id:
        raise AuthorizationError('Only the sender can delete a message')
    db.session.delete(message)
    db.session.commit()
    return jsonify({'success': True, 'message': 'Message deleted'}), 200


@message_bp.route('/unread-count', methods=['GET'])
@jwt_required()
@require_role('admin', 'doctor', 'patient')
def unread_count():
    user = get_current_user()
    count = Message.query.filter_by(receiver_id=user.id, is_read=False).count()
    return jsonify({'success': True, 'data': {'unread_count': count}}), 200
