# ========================
# api_server.py
# ========================

"""
FastAPI Server for the World Life Expectancy Pipeline

Provides REST API endpoints for uploading life expectancy exports, running
the pipeline in the background and reading back its reports.
"""

import logging
import asyncio
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from fastapi import FastAPI, File, UploadFile, HTTPException, BackgroundTasks, Query
from fastapi.responses import FileResponse
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from lifexp.pipeline import DataPipeline
from lifexp.pipeline.storage import REPORT_FILES
from lifexp.utils.config import Config
from lifexp.utils.data_generator import DataGenerator
from lifexp.utils.logging_setup import setup_logging
from lifexp.utils.job_metadata import JobMetadataManager

config = Config()

setup_logging(log_level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

job_metadata_manager = JobMetadataManager(config.JOB_METADATA_FILE)

app = FastAPI(
    title="World Life Expectancy Pipeline API",
    description="Clean life expectancy data and compute rankings, trends and growth reports",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state for tracking jobs
job_status: Dict[str, Dict[str, Any]] = job_metadata_manager.load_job_metadata()

UPLOAD_DIR = Path(config.UPLOAD_DIR)
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

JOB_NOT_FOUND_MSG = "Job not found"
JOB_NOT_COMPLETED_MSG = "Job not completed yet"

def persist_job_status():
    """Save current job status to persistent storage."""
    job_metadata_manager.save_job_metadata(job_status)

class PipelineJobManager:
    """Manages background pipeline jobs."""

    @staticmethod
    def run_pipeline(job_id: str, input_file: str, output_dir: str, overrides: Dict[str, Any]) -> None:
        """Run the pipeline for one job; failures are recorded on the job."""
        try:
            logger.info(f"Starting pipeline job {job_id}")
            job_status[job_id]['status'] = 'processing'
            job_status[job_id]['started_at'] = datetime.now().isoformat()

            job_config = Config({**config.to_dict(), **overrides})
            pipeline = DataPipeline(
                input_file=input_file,
                output_dir=output_dir,
                chunk_size=job_config.DEFAULT_CHUNK_SIZE,
                config=job_config
            )

            if not pipeline.validate_input():
                raise ValueError("Input file validation failed")

            results = pipeline.run()

            job_status[job_id]['status'] = 'completed'
            job_status[job_id]['completed_at'] = datetime.now().isoformat()
            job_status[job_id]['results'] = results
            persist_job_status()

            logger.info(f"Pipeline job {job_id} completed successfully")

        except Exception as e:
            logger.error(f"Pipeline job {job_id} failed: {e}")
            job_status[job_id]['status'] = 'failed'
            job_status[job_id]['error'] = str(e)
            job_status[job_id]['failed_at'] = datetime.now().isoformat()
            persist_job_status()

    @staticmethod
    def run_sample_pipeline(job_id: str, num_countries: int, overrides: Dict[str, Any]) -> None:
        """Generate a sample dataset for the job, then run the pipeline on it."""
        try:
            input_file = job_status[job_id]['input_file']
            generator = DataGenerator(seed=42)
            job_status[job_id]['generation_stats'] = generator.generate_dataset(
                file_path=input_file,
                num_countries=num_countries,
                start_year=config.SAMPLE_START_YEAR,
                end_year=config.SAMPLE_END_YEAR
            )
        except Exception as e:
            logger.error(f"Sample generation for job {job_id} failed: {e}")
            job_status[job_id]['status'] = 'failed'
            job_status[job_id]['error'] = str(e)
            persist_job_status()
            return

        PipelineJobManager.run_pipeline(job_id, input_file, job_status[job_id]['output_dir'], overrides)

def _create_job(filename: str, input_file: str, job_type: str, overrides: Dict[str, Any]) -> Dict[str, Any]:
    job_id = str(uuid.uuid4())
    output_dir = Path(config.DEFAULT_OUTPUT_DIR) / job_id
    output_dir.mkdir(parents=True, exist_ok=True)

    job_status[job_id] = {
        'job_id': job_id,
        'filename': filename,
        'status': 'queued',
        'type': job_type,
        'created_at': datetime.now().isoformat(),
        # Client file names may carry directory parts
        'input_file': input_file or str(UPLOAD_DIR / f"{job_id}_{Path(filename).name}"),
        'output_dir': str(output_dir),
        'parameters': overrides
    }
    persist_job_status()
    return job_status[job_id]

def _policy_overrides(missing_value_policy: Optional[str], negative_value_policy: Optional[str]) -> Dict[str, Any]:
    overrides = {}
    if missing_value_policy:
        overrides['MISSING_VALUE_POLICY'] = missing_value_policy
    if negative_value_policy:
        overrides['NEGATIVE_VALUE_POLICY'] = negative_value_policy
    return overrides

def _completed_job(job_id: str) -> Dict[str, Any]:
    if job_id not in job_status:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)
    job = job_status[job_id]
    if job['status'] != 'completed':
        raise HTTPException(status_code=400, detail=JOB_NOT_COMPLETED_MSG)
    if 'results' not in job:
        raise HTTPException(status_code=404, detail="No results available")
    return job

@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "World Life Expectancy Pipeline API",
        "version": "1.0.0",
        "endpoints": {
            "upload": "/upload - Upload a worldlifexpectancy CSV export",
            "run_pipeline": "/run-pipeline - Run the pipeline on generated sample data",
            "status": "/status/{job_id} - Check job status",
            "jobs": "/jobs - List all jobs",
            "reports": "/reports/{job_id}/{report_name} - Read a report as JSON",
            "download": "/download/{job_id}?file_type=... - Download an output file",
            "health": "/health - Health check",
            "api_docs": "/docs - API documentation"
        },
        "reports": [*REPORT_FILES.keys(), 'overall_average_growth'],
        "api_docs_url": "/docs"
    }

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "active_jobs": len([j for j in job_status.values() if j['status'] == 'processing'])
    }

@app.post("/upload")
async def upload_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    missing_value_policy: Optional[str] = Query(None, pattern="^(impute|delete|interpolate)$"),
    negative_value_policy: Optional[str] = Query(None, pattern="^(report|drop)$")
):
    """
    Upload a CSV file and trigger the pipeline.

    Args:
        file: CSV export of the worldlifexpectancy table
        missing_value_policy: Override for missing life expectancy handling
        negative_value_policy: Override for negative-value handling

    Returns:
        dict: Job ID and status information
    """
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")

    try:
        overrides = _policy_overrides(missing_value_policy, negative_value_policy)
        job = _create_job(file.filename, None, 'upload', overrides)
        content = await file.read()

        def write_file():
            with open(job['input_file'], "wb") as buffer:
                buffer.write(content)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, write_file)
        job['file_size'] = len(content)

        background_tasks.add_task(
            PipelineJobManager.run_pipeline,
            job['job_id'],
            job['input_file'],
            job['output_dir'],
            overrides
        )

        logger.info(f"Started pipeline job {job['job_id']} for file {file.filename}")

        return {
            "job_id": job['job_id'],
            "filename": file.filename,
            "status": "queued",
            "message": "File uploaded successfully. Pipeline processing started.",
            "estimated_processing_info": "Use /status/{job_id} to check progress"
        }

    except OSError as e:
        logger.error(f"Upload failed: {e}")
        raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")

@app.post("/run-pipeline")
async def run_sample_pipeline(
    background_tasks: BackgroundTasks,
    num_countries: int = Query(40, description="Number of sample countries to generate", ge=1, le=1000),
    missing_value_policy: Optional[str] = Query(None, pattern="^(impute|delete|interpolate)$"),
    negative_value_policy: Optional[str] = Query(None, pattern="^(report|drop)$")
):
    """
    Generate sample data and run the pipeline on it (equivalent to main.py).

    Returns:
        dict: Job ID and status information
    """
    overrides = _policy_overrides(missing_value_policy, negative_value_policy)
    filename = f'sample_{num_countries}_countries.csv'
    job = _create_job(filename, None, 'sample_pipeline', overrides)

    background_tasks.add_task(
        PipelineJobManager.run_sample_pipeline,
        job['job_id'],
        num_countries,
        overrides
    )

    logger.info(f"Started sample pipeline job {job['job_id']} with {num_countries} countries")

    return {
        "job_id": job['job_id'],
        "type": "sample_pipeline",
        "status": "queued",
        "message": "Sample pipeline started successfully.",
        "parameters": {"num_countries": num_countries, **overrides},
        "estimated_processing_info": "Use /status/{job_id} to check progress"
    }

@app.get("/status/{job_id}")
async def get_job_status(job_id: str):
    """
    Get the status of a pipeline job.

    Args:
        job_id: Unique job identifier

    Returns:
        dict: Job status and a results summary (full reports via /reports)
    """
    if job_id not in job_status:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)

    job = {k: v for k, v in job_status[job_id].items() if k != 'results'}

    if job['status'] == 'completed' and 'results' in job_status[job_id]:
        results = job_status[job_id]['results']
        job['summary'] = {
            'exploration': results.get('exploration', {}),
            'cleaning_report': results.get('cleaning_report', {}),
            'data_quality_rate': results.get('data_quality_stats', {}).get('success_rate', 0),
            'overall_average_growth': results.get('reports', {}).get('overall_average_growth'),
            'output_files': list(results.get('saved_files', {}).keys())
        }

    return job

@app.get("/jobs")
async def list_jobs(
    status: Optional[str] = Query(None, description="Filter by status: queued, processing, completed, failed"),
    limit: int = Query(50, description="Maximum number of jobs to return", ge=1, le=100)
):
    """List pipeline jobs, newest first, with optional status filtering."""
    jobs = [
        {k: v for k, v in job.items() if k != 'results'}
        for job in job_status.values()
        if not status or job['status'] == status
    ]
    jobs.sort(key=lambda x: x['created_at'], reverse=True)

    return {
        "jobs": jobs[:limit],
        "total_count": len(job_status),
        "filtered_count": len(jobs[:limit])
    }

@app.get("/reports/{job_id}/{report_name}")
async def get_report(job_id: str, report_name: str):
    """
    Read one report of a completed job as JSON.

    Args:
        job_id: Unique job identifier
        report_name: e.g. 'composite_ranking', 'global_trend', 'yearly_growth'
    """
    reports = _completed_job(job_id)['results'].get('reports', {})
    if report_name not in reports:
        raise HTTPException(
            status_code=404,
            detail=f"Report '{report_name}' not found. Available reports: {list(reports.keys())}"
        )
    return {"job_id": job_id, "report": report_name, "data": reports[report_name]}

@app.get("/download/{job_id}")
async def download_results(job_id: str, file_type: str = Query(..., description="Type of file to download")):
    """
    Download an output file of a completed job.

    Args:
        job_id: Unique job identifier
        file_type: Saved file key, e.g. 'cleaned_table', 'composite_ranking', 'summary'
    """
    saved_files = _completed_job(job_id)['results'].get('saved_files', {})
    if file_type not in saved_files:
        raise HTTPException(
            status_code=404,
            detail=f"File type '{file_type}' not found. Available types: {list(saved_files.keys())}"
        )

    file_path = Path(saved_files[file_type])
    if not file_path.exists():
        raise HTTPException(status_code=404, detail="File not found on disk")

    return FileResponse(
        path=file_path,
        filename=f"{job_id}_{file_type}{file_path.suffix}",
        media_type='application/octet-stream'
    )

@app.delete("/jobs/{job_id}")
async def delete_job(job_id: str):
    """Delete a job and its associated files."""
    if job_id not in job_status:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)

    job = job_status[job_id]
    if job['status'] == 'processing':
        raise HTTPException(status_code=409, detail="Job is still processing")

    try:
        input_file = Path(job['input_file'])
        if input_file.exists():
            input_file.unlink()

        output_dir = Path(job['output_dir'])
        if output_dir.exists():
            shutil.rmtree(output_dir)

        del job_status[job_id]
        persist_job_status()

        logger.info(f"Deleted job {job_id} and associated files")
        return {"message": f"Job {job_id} and associated files deleted successfully"}

    except OSError as e:
        logger.error(f"Failed to delete job {job_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to delete job: {str(e)}")

def start_server(host: str = "0.0.0.0", port: int = config.API_PORT, reload: bool = False):
    """Start the FastAPI server."""
    logger.info(f"Starting World Life Expectancy Pipeline API server on {host}:{port}")
    uvicorn.run(
        "api_server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )

if __name__ == "__main__":
    start_server(reload=True)
