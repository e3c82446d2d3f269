"""
Liveness and readiness checks for the hospital API
"""
import logging

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from hms.extensions import db
from hms.models import DischargeDetail, Invoice
from hms.models.base import utcnow

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__, url_prefix='/health')


@health_bp.route('', methods=['GET'])
@health_bp.route('/ping', methods=['GET'])
def health_check():
    """Process is up; does not touch the database"""
    return jsonify({
        'status': 'healthy',
        'service': 'hms-api',
        'hospital': current_app.config.get('HOSPITAL_NAME'),
        'timestamp': utcnow().isoformat(),
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Ready once the billing tables answer a query"""
    try:
        db.session.execute(db.select(Invoice.id).limit(1))
        db.session.execute(db.select(DischargeDetail.id).limit(1))
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Readiness check failed: %s", e)
        return jsonify({
            'status': 'not_ready',
            'database': f'error: {e.__class__.__name__}',
            'timestamp': utcnow().isoformat(),
        }), 503

    return jsonify({
        'status': 'ready',
        'database': 'connected',
        'timestamp': utcnow().isoformat(),
    }), 200


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    return jsonify({'status': 'alive', 'timestamp': utcnow().isoformat()}), 200
