from fastapi import APIRouter, Depends, Request

from ratewatch.models.stats import StatsOut
from ratewatch.services.stats import StatsQuery

"""Call tracking stats, served at the path the dashboards already poll."""

router = APIRouter(prefix="/rate_tracker", tags=["stats"])


def get_stats_query(request: Request) -> StatsQuery:
    return StatsQuery(request.app.state.tracker)


@router.get("/stats", response_model=StatsOut, summary="Daily/weekly call counts and block events")
async def get_stats(query: StatsQuery = Depends(get_stats_query)):
    return query.get_stats()
