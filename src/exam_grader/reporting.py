"""
Exam Reporting

Tabular summaries and exports of exam outcomes built on pandas.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pandas as pd

from .exams.types import ExamInstance
from .utils.clock import utcnow

SUMMARY_COLUMNS = [
    'exam_id', 'candidate_id', 'status', 'total_questions', 'auto_score',
    'manual_score', 'final_score', 'percentage', 'qualified', 'manual_grades',
    'generated_at', 'submitted_at', 'graded_at', 'reviewed_at', 'approved',
]


def exam_summary_row(exam: ExamInstance) -> Dict[str, Any]:
    """Flat record for one exam."""
    return {
        'exam_id': exam.id,
        'candidate_id': exam.candidate_id,
        'status': exam.status.value,
        'total_questions': exam.total_questions,
        'auto_score': exam.auto_score,
        'manual_score': exam.manual_score,
        'final_score': exam.final_score,
        'percentage': exam.percentage,
        'qualified': exam.qualified,
        'manual_grades': len(exam.manual_grades),
        'generated_at': exam.generated_at,
        'submitted_at': exam.submitted_at,
        'graded_at': exam.graded_at,
        'reviewed_at': exam.reviewed_at,
        'approved': exam.approved,
    }


def exams_to_dataframe(exams: Sequence[ExamInstance]) -> pd.DataFrame:
    """One row per exam, columns in SUMMARY_COLUMNS order."""
    return pd.DataFrame([exam_summary_row(exam) for exam in exams], columns=SUMMARY_COLUMNS)


def summarize_exams(exams: Sequence[ExamInstance]) -> Dict[str, Any]:
    """
    Aggregate statistics across exams.

    Pass rate and mean percentage only consider exams that have a score.
    """
    df = exams_to_dataframe(exams)
    summary: Dict[str, Any] = {
        'total_exams': int(len(df)),
        'by_status': {},
        'scored_exams': 0,
        'pass_rate': 0.0,
        'mean_percentage': 0.0,
        'median_percentage': 0.0,
    }
    if df.empty:
        return summary

    summary['by_status'] = {str(k): int(v) for k, v in df['status'].value_counts().items()}

    scored = df[df['percentage'].notna()]
    summary['scored_exams'] = int(len(scored))
    if not scored.empty:
        percentages = scored['percentage'].astype(float)
        summary['pass_rate'] = round(float(scored['qualified'].astype(bool).mean() * 100), 2)
        summary['mean_percentage'] = round(float(percentages.mean()), 2)
        summary['median_percentage'] = round(float(percentages.median()), 2)

    return summary


def status_breakdown(exams: Sequence[ExamInstance]) -> pd.DataFrame:
    """Count, mean percentage and qualified count per status."""
    df = exams_to_dataframe(exams)
    if df.empty:
        return pd.DataFrame(columns=['status', 'count', 'mean_percentage', 'qualified'])

    df['qualified'] = df['qualified'].fillna(False).astype(bool)
    grouped = df.groupby('status').agg(
        count=('exam_id', 'count'),
        mean_percentage=('percentage', 'mean'),
        qualified=('qualified', 'sum'),
    ).reset_index()
    grouped['mean_percentage'] = grouped['mean_percentage'].round(2)
    return grouped


def export_exams(exams: Sequence[ExamInstance], output_path: Path, format: str = 'json') -> Path:
    """
    Write exam results to disk.

    Args:
        exams: Exams to export
        output_path: Destination file
        format: 'json' (full records) or 'csv' (summary rows)

    Returns:
        The path written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if format == 'csv':
        exams_to_dataframe(exams).to_csv(output_path, index=False)
    elif format == 'json':
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump({
                'exported_at': utcnow().isoformat(),
                'total_exams': len(exams),
                'exams': [exam.to_dict() for exam in exams],
            }, f, indent=2, ensure_ascii=False, default=_json_default)
    else:
        raise ValueError(f"Unsupported export format: {format}")

    return output_path


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
