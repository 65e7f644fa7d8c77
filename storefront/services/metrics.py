from storefront.models import database as store
from storefront.models.schemas import CategorySlice, DashboardMetrics, HourlyCount, PopularProduct

ASSISTANT_QUERY_EVENT = "assistant_query"

CATEGORY_COLORS = ("#8884d8", "#82ca9d", "#ffc658", "#ff7300", "#d084d0")


async def dashboard_metrics(db_path: str, active_minutes: int = 30, popular_days: int = 7) -> DashboardMetrics:
    """Aggregate catalog, cart and assistant activity for the admin dashboard.

    Raises StoreUnavailable if any of the underlying queries fail.
    """
    total_products = await store.count_products(db_path)
    active_sessions = await store.count_active_sessions(db_path, active_minutes)
    popular = await store.popular_products(db_path, popular_days)
    categories = await store.category_counts(db_path)
    stats = await store.event_stats(db_path, ASSISTANT_QUERY_EVENT)
    by_hour = await store.events_by_hour(db_path, ASSISTANT_QUERY_EVENT)

    return DashboardMetrics(
        total_products=total_products,
        active_sessions=active_sessions,
        total_conversations=stats["total"],
        avg_response_time_ms=round(stats["avg_response_ms"]),
        popular_products=[PopularProduct(**p) for p in popular],
        conversations_by_hour=[
            HourlyCount(hour=f"{hour:02d}:00", count=by_hour.get(hour, 0)) for hour in range(24)
        ],
        category_distribution=[
            CategorySlice(name=name, value=count, color=CATEGORY_COLORS[i % len(CATEGORY_COLORS)])
            for i, (name, count) in enumerate(categories)
        ],
    )
