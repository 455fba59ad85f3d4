from __future__ import annotations

import pandas as pd

from rhi.metrics import Report

BAR_WIDTH = 40


def _bar(count: int, largest: int) -> str:
    if largest <= 0:
        return ""
    return "■" * int(round(BAR_WIDTH * count / largest))


def render_summary(report: Report) -> str:
    lines = ["", "Summary:"]
    lines.append(f"  Total:\t{report.elapsed_sec:.4f} secs")
    lines.append(f"  Slowest:\t{report.latency_max_ms / 1000:.4f} secs")
    lines.append(f"  Fastest:\t{report.latency_min_ms / 1000:.4f} secs")
    lines.append(f"  Average:\t{report.latency_mean_ms / 1000:.4f} secs")
    lines.append(f"  Requests/sec:\t{report.requests_per_sec:.4f}")
    if report.bytes_received:
        lines.append("")
        lines.append(f"  Total data:\t{report.bytes_received} bytes")
        lines.append(f"  Size/request:\t{report.size_per_request:.0f} bytes")
    lines.append("")
    lines.append(
        f"  Requests:\t{report.total} of {report.requested} "
        f"({report.succeeded} succeeded, {report.failed} failed)"
    )
    if report.cancelled:
        lines.append("  Run was cancelled before all requests were issued.")

    if report.histogram:
        largest = max(bucket.count for bucket in report.histogram)
        lines.extend(["", "Response time histogram:"])
        for bucket in report.histogram:
            lines.append(
                f"  {bucket.mark_ms / 1000:.3f} [{bucket.count}]\t|{_bar(bucket.count, largest)}"
            )

    if report.status_codes:
        lines.extend(["", "Latency distribution:"])
        for pct, value in report.percentiles_ms.items():
            lines.append(f"  {pct}% in {value / 1000:.4f} secs")
        lines.extend(["", "Status code distribution:"])
        for code, count in report.status_codes.items():
            lines.append(f"  [{code}]\t{count} responses")

    if report.error_types:
        lines.extend(["", "Error distribution:"])
        for kind, count in report.error_types.items():
            lines.append(f"  [{count}]\t{kind}")
    lines.append("")
    return "\n".join(lines)


def report_frame(report: Report) -> pd.DataFrame:
    """One ``metric,value`` row per figure in the report."""
    rows: list[tuple[str, float]] = [
        ("requested", report.requested),
        ("workers", report.workers),
        ("total", report.total),
        ("succeeded", report.succeeded),
        ("failed", report.failed),
        ("elapsed_sec", report.elapsed_sec),
        ("requests_per_sec", report.requests_per_sec),
        ("latency_min_ms", report.latency_min_ms),
        ("latency_max_ms", report.latency_max_ms),
        ("latency_mean_ms", report.latency_mean_ms),
        ("bytes_received", report.bytes_received),
        ("cancelled", int(report.cancelled)),
    ]
    rows.extend((f"p{pct}_ms", value) for pct, value in report.percentiles_ms.items())
    rows.extend((f"status_{code}", count) for code, count in report.status_codes.items())
    rows.extend((f"error_{kind}", count) for kind, count in report.error_types.items())
    return pd.DataFrame(rows, columns=["metric", "value"], dtype=object)


def render_csv(report: Report) -> str:
    return report_frame(report).to_csv(index=False)
