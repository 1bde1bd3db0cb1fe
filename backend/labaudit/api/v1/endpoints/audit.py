"""
Audit API endpoints.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional
import uuid

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.responses import HTMLResponse

from labaudit.config import TargetConfig
from labaudit.errors import AuditDefinitionError
from labaudit.logger import logger
from labaudit.schemas.audit_request import AuditRequest, AuditResponse
from labaudit.schemas.audit_result import AuditReportOut
from labaudit.services.audit_runner import AuditRunner
from labaudit.services.definitions import AuditDefinition, builtin_names, load_builtin_definitions, load_definition
from labaudit.services.report import ReportWriter
from labaudit.services.scoring.models import AuditReport

router = APIRouter(tags=["Audits"])


@dataclass
class AuditJob:
    job_id: str
    audit: str
    target: TargetConfig
    status: str = "pending"
    runner: Optional[AuditRunner] = None
    report: Optional[AuditReport] = None
    error: Optional[str] = None


# In-memory job storage
_jobs: Dict[str, AuditJob] = {}


@router.get("")
async def list_audits():
    """List the built-in audits."""
    return [
        {
            "name": d.name,
            "title": d.title,
            "category": d.category,
            "pass_threshold": d.pass_threshold,
            "checks": {c.name: c.weight for c in d.checks}
        }
        for d in load_builtin_definitions()
    ]


@router.post("", response_model=AuditResponse)
async def start_audit(request: AuditRequest, background_tasks: BackgroundTasks):
    """Start a built-in audit in the background."""
    # Only built-in audits: the API never reads arbitrary paths
    if request.audit not in builtin_names():
        raise HTTPException(status_code=404, detail=f"Unknown audit: {request.audit}")
    try:
        definition = load_definition(request.audit)
    except AuditDefinitionError as e:
        raise HTTPException(status_code=500, detail=str(e))

    job_id = str(uuid.uuid4())
    target = TargetConfig.from_settings(base_url=request.base_url, project_root=request.project_root)
    _jobs[job_id] = AuditJob(job_id=job_id, audit=definition.name, target=target)

    background_tasks.add_task(_run_audit, job_id, definition, request.concurrency)

    logger.info(f"Started audit job {job_id}: {definition.name} against {target.base_url}")
    return AuditResponse(job_id=job_id, status="pending", audit=definition.name)


async def _run_audit(job_id: str, definition: AuditDefinition, concurrency: Optional[int]):
    """Background task to run the audit."""
    job = _jobs[job_id]
    try:
        job.status = "running"
        job.runner = AuditRunner(job.target)
        job.report = await job.runner.run(definition, concurrency=concurrency)
        job.status = "completed"
        ReportWriter(job.target.reports_dir).save_json(job.report)
        logger.info(f"Completed audit job {job_id}")
    except Exception as e:
        logger.exception(f"Audit job {job_id} failed: {e}")
        job.status = "failed"
        job.error = str(e)


def running_breakers() -> List[dict]:
    """Circuit breaker state of every audit job still running."""
    return [
        {"job_id": job.job_id, **job.runner.breaker.get_status()}
        for job in list(_jobs.values())
        if job.status == "running" and job.runner and job.runner.breaker
    ]


def _get_job(job_id: str) -> AuditJob:
    if job_id not in _jobs:
        raise HTTPException(status_code=404, detail="Audit job not found")
    return _jobs[job_id]


@router.get("/{job_id}")
async def get_audit(job_id: str):
    """Get audit job status and report."""
    job = _get_job(job_id)

    response = {
        "job_id": job_id,
        "status": job.status,
        "audit": job.audit,
        "target": job.target.base_url
    }
    if job.status == "completed" and job.report:
        response["report"] = AuditReportOut.from_report(job.report).model_dump(mode="json")
    if job.status == "failed":
        response["error"] = job.error
    return response


@router.get("/{job_id}/html", response_class=HTMLResponse)
async def get_audit_html(job_id: str):
    """Get the audit report as HTML."""
    job = _get_job(job_id)
    if job.status != "completed" or not job.report:
        raise HTTPException(status_code=400, detail="Audit not completed yet")
    return HTMLResponse(ReportWriter(job.target.reports_dir).render_html(job.report))
