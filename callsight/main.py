"""
Command line entry point.

    callsight analyze calls.xlsx --provider groq --model llama-3.3-70b-versatile --csv out.csv
    callsight serve --port 5000
"""

import argparse
import signal
import sys

import requests

from .core.cancellation import CancellationToken
from .core.events import LoggingEventSink
from .core.pipeline import create_provider, run_analysis
from .exceptions import CallSightError
from .ingest import load_calls
from .reports import generate_csv, generate_executive_report, generate_text_report
from .utils.config import PipelineConfig, load_config
from .utils.logger import logger, set_level


def _write(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info(f"Wrote {path}")


def cmd_analyze(args) -> int:
    cfg = load_config(args.config)
    set_level(cfg.get("log_level", "INFO"))
    pipeline_config = PipelineConfig.from_config(cfg, provider=args.provider, model=args.model)

    token = CancellationToken()
    signal.signal(signal.SIGINT, lambda *_: token.cancel())
    sink = LoggingEventSink()

    try:
        calls = load_calls(args.file)
        provider = create_provider(pipeline_config)
        snapshot = run_analysis(calls, pipeline_config, sink=sink, token=token, provider=provider)
        if snapshot is None:
            logger.warning("Analysis cancelled")
            return 130

        report = generate_text_report(snapshot)
        if args.report:
            _write(args.report, report)
        else:
            print(report)
        if args.csv:
            _write(args.csv, generate_csv(snapshot))
        if args.summary:
            summary = generate_executive_report(
                snapshot, provider, sink=sink, token=token,
                max_retries=pipeline_config.max_retries,
            )
            _write(args.summary, summary)
    except (CallSightError, ValueError, requests.exceptions.RequestException) as e:
        logger.error(f"Error: {e}")
        return 1
    return 0


def cmd_serve(args) -> int:
    from .server import create_app

    cfg = load_config(args.config)
    set_level(cfg.get("log_level", "INFO"))
    app = create_app(cfg)
    logger.info(f"CallSight server listening on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, threaded=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callsight", description="Categorize call transcripts with an LLM"
    )
    parser.add_argument("--config", help="Path to a JSON config file")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze an Excel/CSV call export")
    analyze.add_argument("file")
    analyze.add_argument("--provider", help="groq or gemini (default from config)")
    analyze.add_argument("--model", help="Model name (default from config)")
    analyze.add_argument("--report", help="Write the text report here instead of stdout")
    analyze.add_argument("--csv", help="Write the CSV export here")
    analyze.add_argument("--summary", help="Generate an executive summary into this file")
    analyze.set_defaults(func=cmd_analyze)

    serve = sub.add_parser("serve", help="Run the streaming HTTP server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.set_defaults(func=cmd_serve)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
