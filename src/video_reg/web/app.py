"""Flask web application: play a video and browse the text found in it."""

import tempfile
import threading
import uuid
from pathlib import Path
from typing import Dict, Optional

from flask import Flask, jsonify, render_template, request, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

from video_reg.config.schemas import VideoRegConfig, get_default_config
from video_reg.core.errors import ExtractionInProgressError
from video_reg.core.frame_source import SUPPORTED_FORMATS, FrameSource, VideoHandle
from video_reg.core.orchestrator import CancellationToken, ExtractionOrchestrator
from video_reg.core.results import ExtractionOutcome
from video_reg.core.text_extractor import TextExtractor
from video_reg.utils.logging_config import configure_logging, get_logger

# Processing jobs storage
_jobs: Dict[str, dict] = {}


def create_app(
    config: Optional[VideoRegConfig] = None,
    flask_config: Optional[dict] = None,
) -> Flask:
    """Create and configure the Flask application."""
    config = config or get_default_config()

    app = Flask(__name__, template_folder="templates")

    CORS(app)

    app.config["MAX_CONTENT_LENGTH"] = config.web.max_upload_mb * 1024 * 1024
    app.config["UPLOAD_FOLDER"] = config.web.upload_folder or tempfile.mkdtemp(prefix="video-reg-")
    app.config["VIDEO_REG"] = config

    if flask_config:
        app.config.update(flask_config)

    configure_logging(config.logging)
    logger = get_logger(__name__)

    def find_job(job_id: str) -> Optional[dict]:
        return _jobs.get(job_id)

    def build_extractor(engine: str) -> TextExtractor:
        return TextExtractor(
            engine=engine,
            confidence_threshold=config.recognition.confidence_threshold,
            gpu=config.recognition.gpu,
            separator=config.recognition.separator,
            preprocess=config.recognition.preprocess,
        )

    @app.route("/")
    def index():
        """Render the player page."""
        return render_template(
            "index.html",
            default_stride=config.sampling.stride,
            default_languages=",".join(config.recognition.languages),
            default_engine=config.recognition.engine,
            engines=TextExtractor.available_engines(),
        )

    @app.route("/api/upload", methods=["POST"])
    def upload_video():
        """Store an uploaded video and create a job for it."""
        if "video" not in request.files:
            return jsonify({"error": "No video file provided"}), 400

        video_file = request.files["video"]

        if video_file.filename == "":
            return jsonify({"error": "No file selected"}), 400

        filename = secure_filename(video_file.filename) or "video"
        if Path(filename).suffix.lower() not in SUPPORTED_FORMATS:
            return jsonify({"error": f"Unsupported format: {Path(filename).suffix}"}), 400

        job_id = str(uuid.uuid4())
        filepath = Path(app.config["UPLOAD_FOLDER"]) / f"{job_id}_{filename}"
        video_file.save(filepath)

        _jobs[job_id] = {
            "status": "idle",
            "progress": 0.0,
            "filepath": str(filepath),
            "filename": filename,
            "results": [],
            "frame_failures": [],
            "error": None,
            "orchestrator": None,
            "cancel_token": None,
            "future": None,
            "lock": threading.Lock(),
        }

        logger.info(f"[Job {job_id[:8]}] Video uploaded: {filename}")

        return jsonify({
            "job_id": job_id,
            "status": "idle",
            "video_url": f"/api/video/{job_id}",
        })

    @app.route("/api/process/<job_id>", methods=["POST"])
    def process_video(job_id: str):
        """Start text extraction for a job in the background."""
        job = find_job(job_id)
        if job is None:
            return jsonify({"error": "Job not found"}), 404

        options = request.get_json(silent=True) or request.form
        try:
            stride = int(options.get("stride", config.sampling.stride))
        except (TypeError, ValueError):
            return jsonify({"error": "stride must be an integer"}), 400

        languages = options.get("languages") or config.recognition.languages
        if isinstance(languages, str):
            languages = [tag.strip() for tag in languages.split(",") if tag.strip()]
        engine = options.get("engine") or config.recognition.engine

        if stride < 1:
            return jsonify({"error": "stride must be a positive integer"}), 400

        token = CancellationToken()

        # Callbacks only touch the job while their run is still the current one
        def on_progress(value: float) -> None:
            with job["lock"]:
                if job["cancel_token"] is token:
                    job["progress"] = round(value * 100, 1)

        def on_complete(outcome: ExtractionOutcome) -> None:
            with job["lock"]:
                if job["cancel_token"] is not token:
                    return
                job["results"] = [r.to_dict() for r in outcome.results]
                job["frame_failures"] = [f.to_dict() for f in outcome.frame_failures]
                job["error"] = None if outcome.ok else str(outcome.error)
                job["status"] = orchestrator.state.value
                orchestrator.shutdown(wait=False)
            logger.info(
                f"[Job {job_id[:8]}] Finished ({job['status']}): {len(outcome.results)} texts"
            )

        with job["lock"]:
            current: Optional[ExtractionOrchestrator] = job["orchestrator"]
            if current is not None and current.is_running:
                return jsonify({"error": "An extraction is already running"}), 409

            if current is None or current.text_extractor.engine_name != engine.lower():
                if current is not None:
                    current.shutdown(wait=False)
                job["orchestrator"] = ExtractionOrchestrator(
                    FrameSource(), build_extractor(engine)
                )
            orchestrator: ExtractionOrchestrator = job["orchestrator"]

            try:
                future = orchestrator.extract(
                    VideoHandle(Path(job["filepath"])),
                    stride=stride,
                    language_hints=languages,
                    progress=on_progress,
                    completion=on_complete,
                    cancel_token=token,
                    allow_language_correction=config.recognition.allow_language_correction,
                )
            except ExtractionInProgressError as e:
                return jsonify({"error": str(e)}), 409

            # Callbacks wait on the lock, so they see this state
            job.update(
                status="running",
                progress=0.0,
                results=[],
                frame_failures=[],
                error=None,
                cancel_token=token,
                future=future,
            )

        logger.info(
            f"[Job {job_id[:8]}] Processing started "
            f"(engine={engine}, stride={stride}, languages={languages})"
        )

        return jsonify({"job_id": job_id, "status": "running"}), 202

    @app.route("/api/status/<job_id>")
    def get_status(job_id: str):
        """Get job status."""
        job = find_job(job_id)
        if job is None:
            return jsonify({"error": "Job not found"}), 404

        return jsonify({
            "job_id": job_id,
            "status": job["status"],
            "progress": job["progress"],
            "results_found": len(job["results"]),
            "error": job["error"],
        })

    @app.route("/api/result/<job_id>")
    def get_result(job_id: str):
        """Get the recognized texts of a finished job."""
        job = find_job(job_id)
        if job is None:
            return jsonify({"error": "Job not found"}), 404

        if job["status"] in ("idle", "running"):
            return jsonify({"error": "Job not complete"}), 400

        return jsonify({
            "job_id": job_id,
            "status": job["status"],
            "results": job["results"],
            "frame_failures": job["frame_failures"],
            "error": job["error"],
        })

    @app.route("/api/cancel/<job_id>", methods=["POST"])
    def cancel_job(job_id: str):
        """Ask a running job to stop after its current frame."""
        job = find_job(job_id)
        if job is None:
            return jsonify({"error": "Job not found"}), 404

        if job["status"] != "running" or job["cancel_token"] is None:
            return jsonify({"error": "Job is not running"}), 400

        job["cancel_token"].cancel()
        return jsonify({"job_id": job_id, "status": "cancelling"}), 202

    @app.route("/api/video/<job_id>")
    def get_video(job_id: str):
        """Stream the uploaded video to the player (supports range requests)."""
        job = find_job(job_id)
        if job is None:
            return jsonify({"error": "Job not found"}), 404

        return send_file(job["filepath"], conditional=True)

    @app.route("/api/job/<job_id>", methods=["DELETE"])
    def delete_job(job_id: str):
        """Forget a finished job and remove its uploaded video."""
        job = find_job(job_id)
        if job is None:
            return jsonify({"error": "Job not found"}), 404

        with job["lock"]:
            orchestrator: Optional[ExtractionOrchestrator] = job["orchestrator"]
            if orchestrator is not None and orchestrator.is_running:
                return jsonify({"error": "Cancel the running extraction first"}), 409
            if orchestrator is not None:
                orchestrator.shutdown(wait=False)
            _jobs.pop(job_id, None)

        Path(job["filepath"]).unlink(missing_ok=True)
        logger.info(f"[Job {job_id[:8]}] Deleted")

        return jsonify({"job_id": job_id, "status": "deleted"})

    @app.route("/api/engines")
    def list_engines():
        """List available OCR engines."""
        return jsonify({"engines": TextExtractor.available_engines()})

    return app


def run_server(config: Optional[VideoRegConfig] = None, debug: bool = False):
    """Run the web server."""
    config = config or get_default_config()
    app = create_app(config)
    app.run(host=config.web.host, port=config.web.port, debug=debug, threaded=True)


if __name__ == "__main__":
    run_server(debug=True)
