from __future__ import annotations

import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from models.result import FrameResult, Marker
from render.markers import render_markers, track_marker
from timeline.replay import replay

from ..api_models import (
    FrameResponse,
    MarkerModel,
    ReplayResponse,
    StatusResponse,
    TimelineSummary,
    TrackPointModel,
)
from ..state import state

router = APIRouter()

LOOKUP_MODES = ("at_or_before", "nearest")


def _marker_model(marker: Marker) -> MarkerModel:
    return MarkerModel(
        id=marker.id,
        x=marker.x,
        y=marker.y,
        class_name=marker.class_name,
        score=marker.score,
        color=marker.color,
        box=list(marker.box) if marker.box is not None else None,
    )


def _timeline_summary() -> TimelineSummary:
    results = state.cache.snapshot()
    return TimelineSummary(
        count=len(results),
        first_time=results[0].time if results else None,
        last_time=results[-1].time if results else None,
        tracked_frames=sum(1 for r in results if r.track_point is not None),
    )


def _frame_response(result: FrameResult, draw_boxes: bool) -> FrameResponse:
    markers = render_markers(result.detections, draw_boxes=draw_boxes, labels=state.get_labels())
    track_point = None
    if result.track_point is not None:
        tp = result.track_point
        track_point = TrackPointModel(
            x=tp.x,
            y=tp.y,
            status=tp.status.value,
            box=list(tp.box) if tp.box is not None else None,
            detection_id=tp.detection_id,
            missed_frame_count=tp.missed_frame_count,
        )
    return FrameResponse(
        time=result.time,
        ratios=list(result.ratios),
        markers=[_marker_model(m) for m in markers],
        track_point=track_point,
    )


@router.get("/status", response_model=StatusResponse)
def status():
    """
    Driver progress for polling clients.
    - running/mode/start/end: current or last run
    - frames/fps: processed frames and throughput
    - progress_pct: share of [start, end] covered by the last processed time
    - outcome/error: how the last run ended
    """
    stats = state.get_run_stats_copy()
    timeline = _timeline_summary()

    progress_pct = None
    start, end = stats.get("start"), stats.get("end")
    if start is not None and end is not None and end > start:
        reached = stats.get("last_time")
        if reached is None:
            reached = timeline.last_time if timeline.last_time is not None else start
        progress_pct = round(min(max((reached - start) / (end - start), 0.0), 1.0) * 100, 2)

    return StatusResponse(
        running=bool(stats.get("running")),
        mode=stats.get("mode"),
        start=start,
        end=end,
        frames=int(stats.get("frames") or 0),
        fps=float(stats.get("fps") or 0.0),
        progress_pct=progress_pct,
        outcome=stats.get("outcome"),
        error=stats.get("error"),
        timeline=timeline,
        uptime_seconds=int(time.time() - (stats.get("start_time") or time.time())),
    )


@router.get("/timeline", response_model=TimelineSummary)
def timeline():
    return _timeline_summary()


@router.get("/timeline/frame", response_model=FrameResponse)
def timeline_frame(
    t: float = Query(..., ge=0.0, description="Playback time in seconds"),
    mode: str = Query("at_or_before", description="at_or_before|nearest"),
    boxes: Optional[bool] = Query(None, description="Attach boxes (default from config)"),
):
    if mode not in LOOKUP_MODES:
        raise HTTPException(status_code=400, detail=f"mode must be one of: {', '.join(LOOKUP_MODES)}")

    if mode == "nearest":
        result = state.cache.nearest(t)
    else:
        result = state.cache.at_or_before(t)
    if result is None:
        raise HTTPException(status_code=404, detail=f"No processed frame for t={t}")

    draw_boxes = state.get_draw_boxes() if boxes is None else boxes
    return _frame_response(result, draw_boxes)


@router.get("/replay", response_model=ReplayResponse)
def replay_view(
    t: float = Query(..., ge=0.0, description="Playback time in seconds"),
    boxes: Optional[bool] = Query(None, description="Attach boxes (default from config)"),
):
    """
    Cumulative trail plus the latest frame's boxes at playback time t.
    Read-only: the same request always returns the same view for a given cache.
    """
    draw_boxes = state.get_draw_boxes() if boxes is None else boxes
    view = replay(state.cache, t, draw_boxes=draw_boxes, labels=state.get_labels())
    return ReplayResponse(
        time=view.time,
        frame_time=view.frame_time,
        trail=[_marker_model(m) for m in view.trail],
        track_trail=[_marker_model(m) for m in view.track_trail],
        boxes=[_marker_model(m) for m in view.boxes],
    )
