from __future__ import annotations
"""Status transition graphs for Order and Payment lifecycles.

Usage:
    from storefront.utils.fsm import TransitionValidator
    PAYMENT_FSM = TransitionValidator({
        'PENDING': {'COMPLETED'},
        'COMPLETED': {'REFUNDED'},
        'REFUNDED': set(),
    }, field_name='payment status')
    PAYMENT_FSM.assert_can_transition(payment.status, 'REFUNDED')

Unknown targets and missing edges abort with 400. Re-applying the current
status is accepted when ``allow_same`` is set (admin forms resubmit it).
"""
from typing import Dict, Set, List
from flask import abort


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status', allow_same: bool = False):
        self.graph = graph
        self.field_name = field_name
        self.allow_same = allow_same

    def can_transition(self, current: str, target: str) -> bool:
        if self.allow_same and current == target:
            return True
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            abort(400, description=f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def allowed_targets(self, current: str) -> List[str]:
        return sorted(self.graph.get(current, set()))

    def is_terminal(self, status: str) -> bool:
        return not self.graph.get(status)

__all__ = ['TransitionValidator']
