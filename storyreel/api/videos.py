"""
Highlight video API endpoints.

Video jobs are polled by the client: each GET steps the job once and
returns its current row.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from storyreel.api.dependencies import get_services
from storyreel.errors import InvalidInput
from storyreel.schemas import VideoStatus
from storyreel.services import Services

router = APIRouter()


@router.post("/simulations/{simulation_id}/runs/{run_id}/video", status_code=201)
async def start_video(
    simulation_id: str, run_id: str, services: Services = Depends(get_services)
):
    """
    Start the highlight video for a completed run.

    Raises:
        409: Run not completed, no turns, or a video already exists
    """
    services.runs.get_run_for_simulation(simulation_id, run_id)
    video = await services.videos.start_video_job(run_id)
    return {"video": video, "message": "Video generation started"}


@router.get("/simulations/{simulation_id}/runs/{run_id}/video")
async def check_video(
    simulation_id: str, run_id: str, services: Services = Depends(get_services)
):
    """Poll the latest video job of a run once and return it"""
    services.runs.get_run_for_simulation(simulation_id, run_id)
    video = await services.videos.check_latest_video(run_id)
    return {"video": video}


@router.get("/videos/{video_id}")
async def get_video(video_id: str, services: Services = Depends(get_services)):
    """Poll a video job by id once and return it"""
    video = await services.videos.check_video_job(video_id)
    return {"video": video}


@router.get("/videos/{video_id}/download")
async def download_video(video_id: str, services: Services = Depends(get_services)):
    """Redirect to the durable asset of a completed video"""
    video = services.videos.get_video(video_id)
    if video.status != VideoStatus.completed or not video.video_url:
        raise InvalidInput("Video is not ready for download")
    return RedirectResponse(video.video_url)
