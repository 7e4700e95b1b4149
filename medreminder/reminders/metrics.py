from prometheus_client import Counter, Gauge


reminders_created_total = Counter(
    "reminders_created_total",
    "Total reminders created via API",
)

reminders_deleted_total = Counter(
    "reminders_deleted_total",
    "Total reminders deleted via API",
)

reminders_fired_total = Counter(
    "reminders_fired_total",
    "Total reminder timers that elapsed",
)

reminders_scheduled = Gauge(
    "reminders_scheduled",
    "Reminder timers currently armed",
)

reminders_dispatch_success_total = Counter(
    "reminders_dispatch_success_total",
    "Total successful push dispatches",
)

reminders_dispatch_failed_total = Counter(
    "reminders_dispatch_failed_total",
    "Total failed push dispatches",
)

subscriptions_pruned_total = Counter(
    "push_subscriptions_pruned_total",
    "Push subscriptions removed after the push service reported them gone",
)
