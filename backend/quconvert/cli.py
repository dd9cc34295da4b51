"""
Question Bank Converter - Command Line

Usage:
    quconvert algorithm.txt
    quconvert - < algorithm.txt

Output:
    - algorithm_converted.json  (converted variables)
    - algorithm_log.md          (diagnostic log)
"""
import sys
import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from quconvert.core.config import settings
from quconvert.core.errors import TranspilerError
from quconvert.models.conversion_models import ConversionStatus, ExerciseConversion
from quconvert.services.pipeline import ConversionPipeline

logger = logging.getLogger(__name__)


class ConversionLog:
    """Collects diagnostic information."""

    def __init__(self, input_name: str):
        self.input_name = input_name
        self.start_time = datetime.now()
        self.conversion: Optional[ExerciseConversion] = None
        self.summary: dict = {}
        self.errors: List[str] = []

    def add_error(self, msg: str):
        self.errors.append(msg)

    def generate_markdown(self) -> str:
        duration = (datetime.now() - self.start_time).total_seconds()
        stats = self.conversion.statistics if self.conversion else {}

        lines = [
            "# Conversion Log",
            "",
            "## Summary",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Input | `{self.input_name}` |",
            f"| Timestamp | {self.start_time.strftime('%Y-%m-%d %H:%M:%S')} |",
            f"| Duration | {duration:.2f}s |",
            f"| Variables | {stats.get('total', 0)} |",
            f"| Ok | {stats.get('ok', 0)} |",
            f"| Fallback | {stats.get('fallback', 0)} |",
            f"| Failed | {stats.get('failed', 0)} |",
            f"| Needs Review | {stats.get('warnings', 0)} |",
            "",
        ]

        if self.errors:
            lines.extend(["## Errors", ""])
            for err in self.errors:
                lines.append(f"- `{err}`")
            lines.append("")

        if self.conversion:
            lines.extend([
                "## Variables",
                "",
                "| Variable | Canonical | Status | Definition |",
                "|----------|-----------|--------|------------|",
            ])
            for result in self.conversion.results:
                definition = result.target_expression.replace("|", "\\|")
                lines.append(
                    f"| `{result.name}` | `{result.canonical_name}` "
                    f"| {result.status.value} | `{definition}` |"
                )
            lines.append("")

            codes = Counter(self.summary.get("issue_codes", {}))
            if codes:
                lines.extend(["## Issues", "", "| Code | Count |", "|------|-------|"])
                for code, count in codes.most_common():
                    lines.append(f"| {code} | {count} |")
                lines.append("")

            if self.conversion.comment:
                lines.extend(["## Exercise Comment", "", "```", self.conversion.comment, "```", ""])

        return "\n".join(lines)


def _read_input(arg: str) -> tuple:
    """Returns (text, output stem path)."""
    if arg == "-":
        return sys.stdin.read(), Path.cwd() / "stdin"
    path = Path(arg).resolve()
    return path.read_text(encoding="utf-8"), path.parent / path.stem


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if not argv:
        print("Usage: quconvert <algorithm.txt | ->")
        print("")
        print("Output:")
        print("  - algorithm_converted.json  (converted variables)")
        print("  - algorithm_log.md          (diagnostic log)")
        return 1

    if argv[0] != "-" and not Path(argv[0]).exists():
        print(f"Error: File not found: {argv[0]}")
        return 1

    algorithm, stem = _read_input(argv[0])
    output_path = stem.parent / f"{stem.name}_converted.json"
    log_path = stem.parent / f"{stem.name}_log.md"

    log = ConversionLog(argv[0])

    print("=" * 60)
    print("Question Bank Converter")
    print("=" * 60)
    print(f"Input:  {argv[0]}")
    print(f"Output: {output_path}")
    print(f"Log:    {log_path}")
    print("=" * 60)

    pipeline = ConversionPipeline(settings)
    try:
        print("\n[1/3] Converting algorithm...")
        conversion = pipeline.convert(algorithm)
        log.conversion = conversion
        log.summary = pipeline.errors.summary()
        print(f"      Found {len(conversion.results)} variables")

        print("[2/3] Writing output...")
        payload = conversion.to_dict()
        payload["summary"] = log.summary
        try:
            output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            print(f"      Wrote {output_path.name}")
        except OSError as e:
            log.add_error(f"OS error writing to {output_path}: {e}")
            print(f"      ERROR: OS error - {e}")

    except TranspilerError as e:
        log.add_error(str(e))
        log_path.write_text(log.generate_markdown(), encoding="utf-8")
        print(f"\nError: {e}")
        print(f"\nLog written to: {log_path}")
        return 1

    print("[3/3] Writing log...")
    log_content = log.generate_markdown()
    log_path.write_text(log_content, encoding="utf-8")
    print(f"      Wrote {len(log_content)} bytes to {log_path.name}")

    stats = conversion.statistics
    print("\n" + "=" * 60)
    print("COMPLETE")
    print("=" * 60)
    print(f"Variables: {stats['total']}")
    print(f"Ok:        {stats['ok']}")
    print(f"Fallback:  {stats['fallback']}")
    print(f"Failed:    {stats['failed']}")
    print("=" * 60)
    for result in conversion.results:
        if result.status == ConversionStatus.FAILED:
            print(f"  - {result.name or result.original_expression}: not converted")
    if log.errors:
        print("\nErrors:")
        for err in log.errors:
            print(f"  - {err}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
