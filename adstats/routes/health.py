"""
Health route — liveness only.
"""
import time

from flask import Blueprint, jsonify

from adstats.config import QUEUE_NAME

bp = Blueprint('health', __name__)

_STARTED_AT = time.monotonic()


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'ok',
        'queue': QUEUE_NAME,
        'uptime': round(time.monotonic() - _STARTED_AT, 1),
    }), 200
