import random

from fastapi import APIRouter, Depends

from finboard.deps import Repository
from finboard.schemas.common import make_success_response
from finboard.services.insights import basic_insights, enhanced_insights

router = APIRouter(
    prefix="/api/v1/insights",
    tags=["Insights"],
)


def get_random() -> random.Random:
    return random.Random()


@router.get("")
async def read_insights(repo: Repository, rng: random.Random = Depends(get_random)):
    return make_success_response(basic_insights(repo, rng=rng).model_dump(mode="json"))


@router.get("/enhanced")
async def read_enhanced_insights(repo: Repository, rng: random.Random = Depends(get_random)):
    return make_success_response(enhanced_insights(repo, rng=rng).model_dump(mode="json"))
