"""
Monitor Reporting Module
========================
Console and HTML reports of a monitoring run.

Features:
- Plain-text printouts (constants, fault summary, per-interval tables)
- JSON-serializable result dictionary
- Self-contained HTML report with summary cards, interval tables,
  traceability record and an interactive plotly chart
"""

import html
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from .config_validation import MonitorConfig
from .fault_ledger import FaultCategory, FaultSummary
from .pipeline import MonitorResult
from .traceability import PROCESSING_VERSION


INFINITY_LABEL = "INFINITY"

CATEGORY_LABELS = {
    FaultCategory.RAW_ERROR: "raw error",
    FaultCategory.SETTLING_TIME: "settling time",
    FaultCategory.RISE_TIME: "rise time",
}


def _format_duration(value: Optional[float], config: MonitorConfig) -> str:
    if value is None:
        return "N/A"
    if config.is_infinite(value):
        return INFINITY_LABEL
    return f"{value:g}"


def _span(result: MonitorResult, first: int, last: int) -> str:
    time = result.series.time
    return f"[{time[first]:g}s, {time[last]:g}s]"


# =============================================================================
# TEXT REPORTS
# =============================================================================

def format_constants(config: MonitorConfig) -> str:
    """Configuration printout."""
    sample_count = (
        f"{config.sample_count} samples" if config.sample_count is not None else "any"
    )
    lines = [
        "Constants:",
        f"Data Samples: {sample_count}",
        f"Sampling Rate: {config.sampling_rate_s:g}s ({config.window_samples} samples)",
        f"Rise Time: {config.rise_time_threshold_s:g}s",
        f"Settling Time: {config.settling_time_threshold_s:g}s",
        f"Settling Time Consecutive Requirement: {config.settling_consecutive} measurements",
        f"Settling Time Error-band Percentage: {config.settling_error_fraction * 100:g}%",
        f"Raw Error Percentage: {config.raw_error_fraction * 100:g}%",
    ]
    return "\n".join(lines) + "\n"


def format_fault_summary(summary: FaultSummary) -> str:
    """Total faults, fault percentage and error breakdown per category."""
    lines = [
        "Results:",
        f"Total faults: {summary.total_faults}",
        f"Percentage of faults: {summary.fault_percentage:g}%",
        "",
        "Error Breakdown:",
    ]
    for category, label in CATEGORY_LABELS.items():
        lines.append(f"Percent error due to {label}: {summary.fraction(category) * 100:g}%")
    if summary.degenerate_triggers:
        lines.append(f"Interval faults without flagged samples: {summary.degenerate_triggers}")
    return "\n".join(lines) + "\n"


def format_transient_periods(result: MonitorResult) -> str:
    lines = [
        "Transient Periods:",
        "Time interval [s,s] : Acceleration [m/s^2] : Rise time [s]",
    ]
    for t in result.transients:
        lines.append(
            f"{_span(result, t.start_index, t.last_index)} : {t.average_accel:g} : "
            f"{_format_duration(t.rise_time, result.config)}"
        )
    return "\n".join(lines) + "\n"


def format_steady_state_periods(result: MonitorResult) -> str:
    lines = [
        "Steady-state Periods:",
        "Time interval [s,s] : Setpoint [m/s] : Steady-state error [m/s]",
    ]
    setpoint = result.series.setpoint
    for s in result.steady_states:
        error = "N/A" if s.steady_state_error is None else f"{s.steady_state_error:g}"
        lines.append(
            f"{_span(result, s.start_index, s.end_index)} : "
            f"{setpoint[s.setpoint_index]:g} : {error}"
        )
    return "\n".join(lines) + "\n"


def format_elevation_intervals(result: MonitorResult) -> str:
    """Changing-elevation intervals only."""
    lines = ["General Elevation Time Intervals:"]
    for iv in result.changing_elevation_intervals:
        lines.append(_span(result, iv.start_index, iv.last_index))
    return "\n".join(lines) + "\n"


def format_hill_intervals(result: MonitorResult) -> str:
    lines = [
        "Settling Times of Elevation-Induced Velocity Oscillations:",
        "Elevation Time Interval [s,s] : Settling time [s]",
    ]
    for h in result.hills:
        lines.append(
            f"{_span(result, h.start_index, h.end_index)} : "
            f"{_format_duration(h.settling_time, result.config)}"
        )
    return "\n".join(lines) + "\n"


def format_monitor_report(result: MonitorResult, details: bool = True) -> str:
    """
    Full console report.

    Args:
        result: Monitoring result
        details: Include the per-interval tables
    """
    parts = [format_constants(result.config)]
    if details:
        parts.extend([
            format_transient_periods(result),
            format_steady_state_periods(result),
            format_elevation_intervals(result),
            format_hill_intervals(result),
        ])
    parts.append(format_fault_summary(result.summary))
    return "\n".join(parts)


def results_to_dict(result: MonitorResult) -> Dict[str, Any]:
    """JSON-serializable summary of a run (times in seconds added)."""
    data = result.to_dict()
    time = result.series.time

    for entry, t in zip(data['transients'], result.transients):
        entry['start_time_s'] = float(time[t.start_index])
        entry['end_time_s'] = float(time[t.last_index])
    for entry, s in zip(data['steady_states'], result.steady_states):
        entry['start_time_s'] = float(time[s.start_index])
        entry['end_time_s'] = float(time[s.end_index])
        entry['setpoint'] = float(result.series.setpoint[s.setpoint_index])
    for entry, h in zip(data['hills'], result.hills):
        entry['start_time_s'] = float(time[h.start_index])
        entry['end_time_s'] = float(time[h.end_index])

    data['processing_version'] = PROCESSING_VERSION
    return data


# =============================================================================
# HTML TEMPLATES
# =============================================================================

HTML_HEAD = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        :root {{
            --primary-color: #2c3e50;
            --danger-color: #e74c3c;
            --light-bg: #f8f9fa;
            --border-color: #dee2e6;
        }}

        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
            line-height: 1.6;
            color: #333;
            max-width: 1200px;
            margin: 0 auto;
            padding: 20px;
        }}

        .report-header {{
            border-bottom: 3px solid var(--primary-color);
            padding-bottom: 20px;
            margin-bottom: 30px;
        }}

        .report-header h1 {{ color: var(--primary-color); }}

        .report-meta {{
            display: flex;
            flex-wrap: wrap;
            gap: 20px;
            font-size: 0.9em;
            color: #666;
        }}

        .section {{ margin-bottom: 40px; }}

        .section h2 {{
            color: var(--primary-color);
            border-bottom: 2px solid var(--border-color);
            padding-bottom: 10px;
        }}

        table {{
            width: 100%;
            border-collapse: collapse;
            margin: 15px 0;
            font-size: 0.95em;
        }}

        th, td {{
            padding: 8px 12px;
            text-align: left;
            border-bottom: 1px solid var(--border-color);
        }}

        th {{ background: var(--light-bg); color: var(--primary-color); }}

        td.fault {{ color: var(--danger-color); font-weight: 600; }}

        .summary-cards {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
            gap: 20px;
        }}

        .summary-card {{
            background: var(--light-bg);
            border-radius: 8px;
            padding: 20px;
            text-align: center;
        }}

        .summary-card .value {{
            font-size: 2em;
            font-weight: 700;
            color: var(--primary-color);
        }}

        .summary-card .label {{ font-size: 0.9em; color: #666; }}

        .traceability-box {{
            background: var(--light-bg);
            border: 1px solid var(--border-color);
            border-radius: 8px;
            padding: 20px;
            font-family: 'Consolas', 'Monaco', monospace;
            font-size: 0.85em;
            overflow-x: auto;
        }}

        .traceability-box .label {{ display: inline-block; min-width: 200px; color: #666; }}

        .footer {{
            margin-top: 50px;
            padding-top: 20px;
            border-top: 1px solid var(--border-color);
            text-align: center;
            font-size: 0.85em;
            color: #888;
        }}
    </style>
</head>
<body>
"""

HTML_FOOTER = """
    <div class="footer">
        <p>Generated by cruise-monitor v{version}</p>
        <p>Report generated: {timestamp}</p>
    </div>
</body>
</html>
"""


# =============================================================================
# HTML SECTIONS
# =============================================================================

def generate_summary_cards(summary: FaultSummary) -> str:
    """Summary metric cards."""
    metrics = {
        'Samples': f"{summary.n_samples}",
        'Total Faults': f"{summary.total_faults}",
        'Fault Percentage': f"{summary.fault_percentage:.2f}%",
    }
    for category, label in CATEGORY_LABELS.items():
        metrics[f"{label.capitalize()} Faults"] = f"{summary.count(category)}"

    cards = [
        f"""
            <div class="summary-card">
                <div class="value">{value}</div>
                <div class="label">{name}</div>
            </div>
        """
        for name, value in metrics.items()
    ]

    return f"""
    <div class="summary-cards">
        {''.join(cards)}
    </div>
    """


def _html_table(headers: List[str], rows: List[List[str]], fault_rows: List[bool]) -> str:
    if not rows:
        return "<p><em>None</em></p>"
    head = ''.join(f"<th>{h}</th>" for h in headers)
    body = []
    for row, is_fault in zip(rows, fault_rows):
        cls = ' class="fault"' if is_fault else ''
        body.append("<tr>" + ''.join(f"<td{cls}>{cell}</td>" for cell in row) + "</tr>")
    return f"<table><thead><tr>{head}</tr></thead><tbody>{''.join(body)}</tbody></table>"


def generate_interval_tables(result: MonitorResult) -> str:
    """Transient, steady-state and hill tables; faulty rows highlighted."""
    config = result.config
    time = result.series.time

    transient_rows, transient_faults = [], []
    for t in result.transients:
        transient_rows.append([
            f"{time[t.start_index]:g}", f"{time[t.last_index]:g}",
            f"{t.average_accel:g}", _format_duration(t.rise_time, config),
        ])
        transient_faults.append(
            t.rise_time is not None and (
                config.is_infinite(t.rise_time) or t.rise_time > config.rise_time_threshold_s
            )
        )

    steady_rows = [
        [
            f"{time[s.start_index]:g}", f"{time[s.end_index]:g}",
            f"{result.series.setpoint[s.setpoint_index]:g}",
            "N/A" if s.steady_state_error is None else f"{s.steady_state_error:g}",
        ]
        for s in result.steady_states
    ]

    hill_rows, hill_faults = [], []
    for h in result.hills:
        hill_rows.append([
            f"{time[h.start_index]:g}", f"{time[h.end_index]:g}",
            _format_duration(h.settling_time, config),
        ])
        hill_faults.append(
            h.settling_time is not None and (
                config.is_infinite(h.settling_time)
                or h.settling_time > config.settling_time_threshold_s
            )
        )

    return f"""
    <div class="section">
        <h2>Transient Periods</h2>
        {_html_table(['Start [s]', 'End [s]', 'Acceleration [m/s^2]', 'Rise Time [s]'],
                     transient_rows, transient_faults)}
        <h2>Steady-state Periods</h2>
        {_html_table(['Start [s]', 'End [s]', 'Setpoint [m/s]', 'Steady-state Error [m/s]'],
                     steady_rows, [False] * len(steady_rows))}
        <h2>Hill Intervals</h2>
        {_html_table(['Start [s]', 'End [s]', 'Settling Time [s]'], hill_rows, hill_faults)}
    </div>
    """


def generate_traceability_section(traceability: Dict[str, Any]) -> str:
    """HTML for the traceability record."""
    important_fields = [
        ('source_filename', 'Source File'),
        ('source_hash', 'Data Hash'),
        ('config_hash', 'Config Hash'),
        ('username', 'Analyst'),
        ('hostname', 'Workstation'),
        ('timestamp_utc', 'Analysis Time (UTC)'),
        ('processing_version', 'Processing Version'),
    ]

    fields = []
    for key, label in important_fields:
        value = traceability.get(key)
        if value is not None:
            fields.append(
                f'<div class="field"><span class="label">{label}:</span> '
                f'<span class="value">{html.escape(str(value))}</span></div>'
            )

    return f"""
    <div class="section">
        <h2>Traceability Record</h2>
        <div class="traceability-box">
            {''.join(fields)}
        </div>
    </div>
    """


def _flagged_spans(flags: np.ndarray) -> List[tuple]:
    """[start, end) runs of flagged samples."""
    padded = np.concatenate(([False], flags, [False])).astype(np.int8)
    edges = np.flatnonzero(np.diff(padded))
    return list(zip(edges[::2], edges[1::2]))


def generate_monitor_chart_html(result: MonitorResult) -> str:
    """
    Interactive chart: setpoint and measurement with fault spans shaded,
    elevation underneath.
    """
    series = result.series
    time = series.time

    fig = make_subplots(
        rows=2, cols=1, shared_xaxes=True,
        row_heights=[0.7, 0.3], vertical_spacing=0.05,
    )

    fig.add_trace(go.Scatter(
        x=time, y=series.setpoint, mode='lines',
        line=dict(color='green', width=1, dash='dash'), name='Setpoint',
    ), row=1, col=1)
    fig.add_trace(go.Scatter(
        x=time, y=series.measurement, mode='lines',
        line=dict(color='blue', width=1), name='Measurement',
    ), row=1, col=1)
    fig.add_trace(go.Scatter(
        x=time, y=series.elevation, mode='lines',
        line=dict(color='gray', width=1), name='Elevation',
    ), row=2, col=1)

    for start, end in _flagged_spans(result.fault_flags):
        fig.add_vrect(
            x0=time[start], x1=time[end - 1],
            fillcolor='red', opacity=0.15, line_width=0,
            row=1, col=1,
        )

    fig.update_yaxes(title_text="Velocity [m/s]", row=1, col=1)
    fig.update_yaxes(title_text="Elevation [m]", row=2, col=1)
    fig.update_xaxes(title_text="Time [s]", row=2, col=1)
    fig.update_layout(title="Controller Response", height=600)

    return fig.to_html(full_html=False, include_plotlyjs='cdn')


# =============================================================================
# MAIN REPORT GENERATOR
# =============================================================================

def generate_html_report(
    result: MonitorResult,
    traceability: Optional[Dict[str, Any]] = None,
    title: str = "Cruise Control Monitoring Report",
    include_chart: bool = True,
) -> str:
    """
    Generate a complete HTML report for one run.

    Args:
        result: Monitoring result
        traceability: Record from create_traceability_record
        title: Page title
        include_chart: Embed the plotly chart

    Returns:
        Complete HTML report as string
    """
    title = html.escape(title)
    source = html.escape(str((traceability or {}).get('source_filename', 'in-memory series')))
    report_parts = [HTML_HEAD.format(title=title)]

    report_parts.append(f"""
    <div class="report-header">
        <h1>{title}</h1>
        <div class="report-meta">
            <span>Source: {source}</span>
            <span>Samples: {result.n_samples}</span>
            <span>Duration: {result.series.duration_s:g}s</span>
        </div>
    </div>
    """)

    report_parts.append(f"""
    <div class="section">
        <h2>Fault Summary</h2>
        {generate_summary_cards(result.summary)}
    </div>
    """)

    if include_chart:
        report_parts.append(f"""
        <div class="section">
            <h2>Response</h2>
            {generate_monitor_chart_html(result)}
        </div>
        """)

    report_parts.append(generate_interval_tables(result))

    if traceability:
        report_parts.append(generate_traceability_section(traceability))

    report_parts.append(HTML_FOOTER.format(
        version=PROCESSING_VERSION, timestamp=datetime.now().isoformat()
    ))

    return ''.join(report_parts)


def save_report(html_content: str, filepath: Union[str, Path]) -> Path:
    """
    Save HTML report to file.

    Returns:
        Path to saved file
    """
    filepath = Path(filepath)

    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(html_content)

    return filepath
