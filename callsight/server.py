"""
HTTP interface for CallSight.

POST /api/analyze-stream   multipart upload, answers with text/event-stream
POST /api/generate-report  executive report for a snapshot
GET  /api/health           provider availability
"""

import threading
from typing import Any, Dict, Optional

import requests
from flask import Flask, Response, jsonify, request

from .core.cancellation import CancellationToken
from .core.models import AnalysisSnapshot, Severity
from .core.pipeline import create_provider, run_analysis
from .core.streaming import StreamingTransport
from .exceptions import CallSightError
from .ingest import SUPPORTED_EXTENSIONS, load_calls
from .providers.factory import ProviderFactory
from .reports import generate_executive_report
from .utils.config import PipelineConfig, load_config
from .utils.logger import logger

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _provider_for(app: Flask, config: PipelineConfig):
    # Tests inject a provider instead of calling a real API
    override = app.config.get("CALLSIGHT_PROVIDER")
    return override if override is not None else create_provider(config)


def _analysis_worker(app, transport, token, file_bytes, filename, config):
    try:
        transport.emit("Starting file parsing...")
        calls = load_calls(file_bytes, filename)
        transport.emit(f"Successfully parsed {len(calls)} calls", Severity.SUCCESS)

        snapshot = run_analysis(
            calls, config, sink=transport, token=token, provider=_provider_for(app, config)
        )
        if snapshot is None:
            transport.finish(success=False, error="Analysis cancelled")
            return

        transport.finish(
            success=True,
            message=f"Successfully analyzed {snapshot.total_calls} calls",
            data=snapshot.to_dict(),
        )
    except (CallSightError, ValueError) as e:
        transport.emit(f"Error: {e}", Severity.ERROR)
        transport.finish(success=False, error=str(e))
    except Exception as e:
        logger.error(f"Unexpected error during analysis: {e}", exc_info=True)
        transport.emit(f"Error: {e}", Severity.ERROR)
        transport.finish(success=False, error=str(e) or "An error occurred during analysis")


def _stream(transport: StreamingTransport, token: CancellationToken):
    try:
        yield from transport.iter_frames()
    finally:
        # Client went away (or stream finished): stop the batch
        token.cancel()
        transport.close()


def _rejected(error: str) -> Response:
    transport = StreamingTransport()
    transport.finish(success=False, error=error)
    return Response(
        transport.iter_frames(), mimetype="text/event-stream", headers=SSE_HEADERS
    )


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config["CALLSIGHT"] = config if config is not None else load_config()

    @app.route("/api/health")
    def health():
        cfg = PipelineConfig.from_config(app.config["CALLSIGHT"])
        try:
            healthy = _provider_for(app, cfg).health_check()
        except ValueError as e:
            return jsonify({"status": "degraded", "provider": cfg.model.provider, "error": str(e)})
        return jsonify({
            "status": "ok" if healthy else "degraded",
            "provider": cfg.model.provider,
            "model": cfg.model.model,
            "provider_healthy": healthy,
        })

    @app.route("/api/analyze-stream", methods=["POST"])
    def analyze_stream():
        upload = request.files.get("file")
        provider = request.form.get("provider")
        model = request.form.get("model")

        if upload is None:
            return _rejected("No file uploaded")
        if not provider or not model:
            return _rejected("Provider and model must be specified")
        if not ProviderFactory.is_registered(provider):
            return _rejected(
                f"Invalid provider. Must be one of: {', '.join(ProviderFactory.list_providers())}"
            )
        filename = upload.filename or ""
        if not filename.lower().endswith(SUPPORTED_EXTENSIONS):
            return _rejected("Only Excel files (.xlsx, .xls) or CSV files are supported")

        pipeline_config = PipelineConfig.from_config(
            app.config["CALLSIGHT"], provider=provider, model=model
        )
        transport = StreamingTransport()
        token = CancellationToken()
        worker = threading.Thread(
            target=_analysis_worker,
            args=(app, transport, token, upload.read(), filename, pipeline_config),
            name="callsight-batch",
            daemon=True,
        )
        worker.start()
        logger.info(f"Started streaming analysis of {filename} with {provider}/{model}")

        return Response(
            _stream(transport, token), mimetype="text/event-stream", headers=SSE_HEADERS
        )

    @app.route("/api/generate-report", methods=["POST"])
    def generate_report():
        body = request.get_json(silent=True) or {}
        data = body.get("data")
        if not data:
            return jsonify({"success": False, "error": "Analysis data is required"}), 400

        model_config = body.get("modelConfig") or {}
        cfg = PipelineConfig.from_config(
            app.config["CALLSIGHT"],
            provider=model_config.get("provider"),
            model=model_config.get("model"),
        )
        try:
            report = generate_executive_report(
                AnalysisSnapshot.from_dict(data),
                _provider_for(app, cfg),
                max_retries=cfg.max_retries,
            )
        except (CallSightError, ValueError, requests.exceptions.RequestException) as e:
            logger.error(f"Error generating report: {e}")
            return jsonify({"success": False, "error": str(e)}), 500

        return jsonify({"success": True, "report": report})

    return app
