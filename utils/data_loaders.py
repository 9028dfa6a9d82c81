"""
Data loaders for sample submissions and the HSN/SAC rate schedule
"""

import json
from pathlib import Path
from typing import Dict, List

import pandas as pd
from rapidfuzz import fuzz, process
from rapidfuzz.utils import default_process


class InvoiceDataLoader:
    """Load and manage sample invoice submissions"""

    def __init__(self, data_dir: str = "data", filename: str = "sample_invoices.json"):
        self.data_dir = Path(data_dir)
        self.filename = filename
        self.submissions = self._load_submissions()

    def _load_submissions(self) -> List[Dict]:
        """Load all sample submissions"""
        submission_file = self.data_dir / self.filename

        with open(submission_file, encoding="utf-8") as f:
            return json.load(f)

    def get_submission(self, submission_id: str) -> Dict:
        """Get specific submission by ID"""
        for submission in self.submissions:
            if submission.get('submission_id') == submission_id:
                return self.strip_meta(submission)
        raise ValueError(f"Submission {submission_id} not found")

    def get_by_category(self, category: str) -> List[Dict]:
        """Get submissions by test category"""
        return [
            self.strip_meta(s) for s in self.submissions
            if s.get('_category') == category
        ]

    def all(self) -> List[Dict]:
        return [self.strip_meta(s) for s in self.submissions]

    @staticmethod
    def strip_meta(submission: Dict) -> Dict:
        """Drop loader bookkeeping keys before the submission is assembled"""
        return {k: v for k, v in submission.items() if not k.startswith('_') and k != 'submission_id'}


class HSNRateSchedule:
    """
    HSN/SAC master with GST rates

    CSV columns: hsn_code, description, rate (case-insensitive; `hsn` accepted
    for `hsn_code`).
    """

    def __init__(self, csv_path: str):
        self.csv_path = Path(csv_path)
        self.df = self._load()

    def _load(self) -> pd.DataFrame:
        df = pd.read_csv(self.csv_path, dtype=str)
        df.columns = [c.strip().lower() for c in df.columns]
        if "hsn" in df.columns and "hsn_code" not in df.columns:
            df = df.rename(columns={"hsn": "hsn_code"})

        for column in ("hsn_code", "description", "rate"):
            if column not in df.columns:
                raise ValueError(f"HSN schedule {self.csv_path} must have a '{column}' column")

        df["hsn_code"] = df["hsn_code"].astype(str).str.strip()
        df["description"] = df["description"].astype(str)
        df["rate"] = pd.to_numeric(df["rate"])
        return df

    def get_rate(self, hsn_code: str) -> float:
        """GST rate for an exact HSN/SAC code"""
        matches = self.df[self.df["hsn_code"] == str(hsn_code).strip()]
        if matches.empty:
            raise KeyError(f"HSN/SAC {hsn_code} not in schedule")
        return float(matches.iloc[0]["rate"])

    def search(self, description: str, limit: int = 1) -> List[Dict]:
        """Closest schedule rows for an item description (score 0-100)"""
        choices = self.df["description"].tolist()
        if not choices or not description.strip():
            return []

        matches = process.extract(
            description, choices, scorer=fuzz.WRatio, processor=default_process, limit=limit
        )
        results = []
        for _, score, idx in matches:
            row = self.df.iloc[idx]
            results.append({
                "hsn_code": row["hsn_code"],
                "description": row["description"],
                "rate": float(row["rate"]),
                "score": float(score),
            })
        return results
