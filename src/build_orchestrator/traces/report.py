"""Hand the merged model to coverage.py for rendering."""

from __future__ import annotations

from pathlib import Path

from coverage import Coverage, CoverageData

from build_orchestrator.traces.models import CoverageModel


def write_coverage_data(model: CoverageModel, source_root: Path, path: Path) -> Path:
    """Persist the merged model as a fresh coverage.py data file."""
    root = source_root.resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.unlink(missing_ok=True)
    data = CoverageData(basename=str(path))
    # Fix the measurement mode up front so an all-uncovered model can still be touched.
    if model.has_arcs:
        data.add_arcs({})
    else:
        data.add_lines({})

    covered: list[str] = []
    uncovered: list[str] = []
    for item in model.files:
        filename = str(root / item.path)
        if model.has_arcs and item.arcs:
            data.add_arcs({filename: sorted(item.arcs)})
            covered.append(filename)
        elif not model.has_arcs and item.lines:
            data.add_lines({filename: sorted(item.lines)})
            covered.append(filename)
        else:
            uncovered.append(filename)
    # Files nobody executed still belong in the report at 0%.
    if uncovered:
        data.touch_files(uncovered)
    data.write()
    return path


def render_html_report(data_file: Path, output_dir: Path, title: str | None = None) -> float:
    """Render an HTML report from a data file and return the total percentage."""
    output_dir.mkdir(parents=True, exist_ok=True)
    cov = Coverage(data_file=str(data_file), config_file=False)
    cov.load()
    return cov.html_report(directory=str(output_dir), title=title)
