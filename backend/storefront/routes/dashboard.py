from flask import Blueprint
from storefront.decorators.auth import require_permissions
from storefront.services.dashboard import dashboard_stats, recent_orders

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.get('/stats')
@require_permissions('ADMIN.DASHBOARD.READ')
def stats():
    return dashboard_stats()


@dashboard_bp.get('/recent-orders')
@require_permissions('ADMIN.DASHBOARD.READ')
def latest_orders():
    return {'data': recent_orders()}
