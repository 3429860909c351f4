from chat_relay.sync.reconciler import SummaryReconciler
from chat_relay.sync.relay import ChangeRelay

__all__ = ["ChangeRelay", "SummaryReconciler"]
