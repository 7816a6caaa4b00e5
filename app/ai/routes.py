from flask import Blueprint, jsonify, request
from flask_login import login_required

from app.ai.usage import DEFAULT_PERIOD, UsageQueryError, usage_summary
from app.api.errors import api_error
from app.auth.provider import current_user_id

ai_bp = Blueprint('ai', __name__)


@ai_bp.route('/usage', methods=['GET'])
@login_required
def usage():
    try:
        summary = usage_summary(
            current_user_id(),
            period=request.args.get('period') or DEFAULT_PERIOD,
            start_date=request.args.get('start_date'),
            end_date=request.args.get('end_date'),
        )
    except UsageQueryError as e:
        return api_error(str(e), 'Nieprawidłowe parametry zapytania', 400)
    return jsonify(summary)
