from fastapi import APIRouter, Depends

from bloodbuddy.services import get_stats_service, StatsService
from . import ok

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard/stats")
async def get_dashboard_stats(stats: StatsService = Depends(get_stats_service)):
    user_stats = await stats.user_stats()
    return ok("Dashboard statistics retrieved successfully", {
        "requests": await stats.request_stats(),
        "donations": await stats.donation_stats(),
        "users": user_stats,
        "donations_by_blood_group": await stats.donations_by_blood_group(),
        "top_donors": await stats.leaderboard(5)
    })


@router.get("/")
async def root():
    return {"status": "healthy", "service": "Blood Buddy API"}
