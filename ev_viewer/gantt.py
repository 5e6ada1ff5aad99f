"""Gantt chart rendering: printable HTML and matplotlib PNG/PDF exports.

Both renderers draw from the same TimelineLayout: a sidebar of phase headers and
task names on the left, and a timeline on the right whose month columns
are sized by their flex weight.
"""
import io
import logging

import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
from matplotlib.lines import Line2D
from flask import render_template

from .dates import format_display_date

logger = logging.getLogger(__name__)

FALLBACK_COLOR = '#6b7280'
MILESTONE_MARKER_PX = 14
EXPORT_FORMATS = {'png': 'image/png', 'pdf': 'application/pdf'}


def _color(phase):
    return phase.color or FALLBACK_COLOR


def _rows(layout):
    rows = []
    for group in layout.groups:
        rows.append((group.phase, None))
        for bar in group.bars:
            rows.append((group.phase, bar))
    return rows


def render_gantt_html(project_name, client_name, layout):
    return render_template(
        'gantt.html',
        project_name=project_name,
        client_name=client_name,
        layout=layout,
        marker_px=MILESTONE_MARKER_PX,
        display_date=format_display_date,
        fallback_color=FALLBACK_COLOR,
    )


def render_gantt_figure(project_name, client_name, layout):
    if layout is None:
        fig, ax = plt.subplots(figsize=(12, 3))
        ax.text(0.5, 0.5, 'No tasks to display', ha='center', va='center', fontsize=16, color='gray',
                transform=ax.transAxes)
        ax.set_axis_off()
        fig.suptitle(project_name)
        return fig

    rows = _rows(layout)
    n = len(rows)
    fig = plt.figure(figsize=(16, max(3.0, 1.6 + 0.4 * (n + 1))))
    grid = fig.add_gridspec(1, 2, width_ratios=[1, 3], wspace=0.01)
    side = fig.add_subplot(grid[0])
    ax = fig.add_subplot(grid[1])
    for a in (side, ax):
        a.set_ylim(n - 0.5, -1.5)
        a.set_yticks([])
        a.set_xticks([])
        for spine in a.spines.values():
            spine.set_visible(False)
    side.set_xlim(0, 1)
    ax.set_xlim(0, 100)

    # Header row
    side.add_patch(mpatches.Rectangle((0, -1.5), 1, 1, facecolor='#1f2937'))
    side.text(0.03, -1, 'PHASE / TASK', va='center', fontsize=9, fontweight='bold', color='white')
    cursor = 0.0
    for month in layout.months:
        width = month.flex * 100
        ax.add_patch(mpatches.Rectangle((cursor, -1.5), width, 1, facecolor='#1f2937', edgecolor='white'))
        ax.text(cursor + width / 2, -1, month.label, ha='center', va='center', fontsize=8,
                fontweight='bold', color='white', clip_on=True)
        ax.axvline(cursor, color='#e5e7eb', lw=0.8, zorder=0)
        cursor += width

    for y, (phase, bar) in enumerate(rows):
        color = _color(phase)
        if bar is None:
            side.add_patch(mpatches.Rectangle((0, y - 0.5), 0.012, 1, facecolor=color))
            side.add_patch(mpatches.Rectangle((0.012, y - 0.5), 0.988, 1, facecolor=color, alpha=0.08))
            side.text(0.03, y, phase.name.upper(), va='center', fontsize=9, fontweight='bold')
            ax.axhspan(y - 0.5, y + 0.5, color=color, alpha=0.05, zorder=0)
            continue
        task = bar.task
        side.text(0.05, y, task.name, va='center', fontsize=8, clip_on=True)
        side.text(0.98, y, f'{task.start_date} - {task.end_date}', va='center', ha='right', fontsize=7,
                  color='#6b7280')
        if bar.is_milestone:
            ax.scatter(bar.left, y, marker='D', s=MILESTONE_MARKER_PX * 6, color=color, edgecolor='black',
                       zorder=4)
        else:
            ax.barh(y, bar.width, left=bar.left, height=0.6, align='center', color=color, edgecolor=color,
                    zorder=3)
            ax.text(bar.left + 0.4, y, task.name, va='center', fontsize=7, color='white', clip_on=True, zorder=5)

    legend_items = [mpatches.Patch(color=_color(g.phase), label=g.phase.name) for g in layout.groups]
    legend_items.append(Line2D([0], [0], marker='D', color='w', markerfacecolor='#9ca3af',
                               markeredgecolor='black', markersize=8, label='Milestone'))
    fig.legend(handles=legend_items, loc='lower center', ncol=len(legend_items), frameon=False, fontsize=8)
    title = project_name if not client_name else f'{project_name}\n{client_name}'
    fig.suptitle(title, fontsize=13, fontweight='bold')
    return fig


def render_gantt_image(project_name, client_name, layout, fmt='png'):
    """Render the chart and return (bytes, mimetype)."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format '{fmt}'")
    fig = render_gantt_figure(project_name, client_name, layout)
    buf = io.BytesIO()
    try:
        fig.savefig(buf, format=fmt)
    finally:
        plt.close(fig)
    logger.debug('Rendered %s Gantt for %s (%d bytes)', fmt, project_name, buf.tell())
    return buf.getvalue(), EXPORT_FORMATS[fmt]
