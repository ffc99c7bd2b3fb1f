"""
Orders Admin Routes
===================

JSON API behind the console's orders screen. Reads come from the
OrderStore; every change goes through the FulfillmentOrchestrator.
"""

from flask import request, jsonify, url_for

from ..auth.utils import get_shipdesk, session_required
from . import orders_bp
from .outcomes import http_status


def _respond(outcome):
    body = outcome.to_dict()
    if outcome.needs_reauth:
        body['redirect'] = url_for('auth.login')
    return jsonify(body), http_status(outcome)


def _not_found(order_id):
    return jsonify({'success': False, 'outcome': 'order_not_found',
                    'error': f'Order {order_id} not found'}), 404


@orders_bp.route('/api/orders')
@session_required
def api_orders():
    """Load a page of orders, then filter it by status and search text"""
    desk = get_shipdesk()
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', type=int)

    outcome = desk.orchestrator.load_page(max(page, 1), limit)
    if not outcome.ok:
        return _respond(outcome)

    store = desk.store
    orders = store.filter(status=request.args.get('status'), search=request.args.get('q', ''))

    return jsonify({
        'success': True,
        'orders': [order.to_dict() for order in orders],
        'pagination': store.pagination.to_dict(),
        'shown': len(orders),
        'total': len(store),
    })


@orders_bp.route('/api/order/<order_id>')
@session_required
def api_order_details(order_id):
    """Get one order from the current page"""
    order = get_shipdesk().store.find(order_id)
    if order is None:
        return _not_found(order_id)
    return jsonify({'success': True, 'order': order.to_dict()})


@orders_bp.route('/api/order/<order_id>/status', methods=['POST'])
@session_required
def api_update_status(order_id):
    """Change an order's status (confirming also creates the shipment)"""
    desk = get_shipdesk()
    order = desk.store.find(order_id)
    if order is None:
        return _not_found(order_id)

    data = request.get_json(silent=True) or {}
    new_status = str(data.get('status') or '').strip().lower()
    if not new_status:
        return jsonify({'success': False, 'error': 'Status is required'}), 400

    return _respond(desk.orchestrator.transition(order, new_status))


@orders_bp.route('/api/order/<order_id>/shipment', methods=['POST'])
@session_required
def api_create_shipment(order_id):
    """Create the Shiprocket shipment for an order (manual retry path)"""
    return _respond(get_shipdesk().orchestrator.create_shipment(order_id))


@orders_bp.route('/api/order/<order_id>/shipment/cancel', methods=['POST'])
@session_required
def api_cancel_shipment(order_id):
    """Cancel the Shiprocket shipment for an order"""
    return _respond(get_shipdesk().orchestrator.cancel_shipment(order_id))


@orders_bp.route('/api/order/<order_id>/tracking')
@session_required
def api_tracking(order_id):
    """Current tracking snapshot for the order's AWB code"""
    desk = get_shipdesk()
    order = desk.store.find(order_id)
    if order is None:
        return _not_found(order_id)
    return _respond(desk.orchestrator.track(order))
