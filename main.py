"""
GST Invoice Engine
Assemble invoices, report totals and serve the HTTP surface

Usage:
    python main.py [submission_id]                 # Assemble one sample submission
    python main.py --batch                         # Assemble all sample submissions
    python main.py --category ROUNDED              # Assemble by sample category
    python main.py --file submission.json          # Assemble a submission file
    python main.py --suggest "cotton shirt"        # Tax category suggestion
    python main.py --serve                         # Run the HTTP API
"""

import asyncio
import json
import sys
from decimal import Decimal
from pathlib import Path

from agents.reporter import ReporterAgent
from agents.suggestion_agent import build_suggestion_provider
from engine.assembler import InvoiceAssembler
from models.errors import InvoiceEngineError, ValidationError
from models.invoice import InvoiceRecord
from models.records import CompanyData
from services.invoice_service import InvoiceService
from storage.repository import build_repository
from utils.config import default_config, load_config
from utils.data_loaders import InvoiceDataLoader


class InvoiceEngineApp:
    """Main invoice engine application"""

    def __init__(self, config_path: str = "config.yaml"):
        # Load configuration
        self.config = self._load_config(config_path)

        self.assembler = InvoiceAssembler()
        self.reporter = ReporterAgent(self.config, use_color=sys.stdout.isatty())

        # Sample submissions
        self.data_dir = Path(self.config.get('data', {}).get('dir', 'data'))

    def _load_config(self, config_path: str) -> dict:
        """Load configuration"""
        try:
            return load_config(config_path)
        except FileNotFoundError:
            print(f"⚠️  Config file {config_path} not found, using defaults")
            return default_config()

    def build_service(self) -> InvoiceService:
        storage = self.config['storage']
        return InvoiceService(
            invoices=build_repository(InvoiceRecord, storage, "invoices"),
            company=build_repository(CompanyData, storage, "company"),
            assembler=self.assembler,
            suggestions=build_suggestion_provider(self.config['ai']),
        )

    def assemble_single(self, submission: dict, label: str):
        """Assemble one submission and print its report"""

        print("\n🚀 GST Invoice Engine - Single Invoice Mode")
        print("=" * 80)
        print(f"\n📄 Assembling: {label}")

        try:
            record = self.assembler.assemble_submission(submission)
        except ValidationError as e:
            print(f"\n❌ Submission rejected:")
            for error in e.errors:
                print(f"   • {error}")
            return
        except InvoiceEngineError as e:
            print(f"\n❌ Error: {e}")
            return

        print("\n" + self.reporter.generate_console_report(record))

        # Save JSON report
        report_file = Path("reports") / f"{record.invoice_number or 'invoice'}_report.json"
        report_file.parent.mkdir(exist_ok=True)
        with open(report_file, 'w', encoding='utf-8') as f:
            f.write(self.reporter.generate_json_report(record))

        print(f"\n💾 JSON report saved: {report_file}")

    def assemble_batch(self, category: str = None):
        """Assemble multiple sample submissions"""

        print("\n🚀 GST Invoice Engine - Batch Mode")
        print("=" * 80)

        loader = InvoiceDataLoader(str(self.data_dir))
        if category:
            submissions = loader.get_by_category(category)
            print(f"\n📦 Processing {len(submissions)} submissions in category: {category}")
        else:
            submissions = loader.all()
            print(f"\n📦 Processing all {len(submissions)} sample submissions")

        records = []
        batch_results = {
            'total': len(submissions),
            'assembled': 0,
            'rejected': 0,
            'rounded': 0,
            'total_amount': Decimal("0"),
            'total_tax': Decimal("0"),
            'total_round_off': Decimal("0"),
            'rejections': [],
        }

        for submission in submissions:
            label = submission.get('invoiceNumber', '(no number)')
            try:
                record = self.assembler.assemble_submission(submission)
            except InvoiceEngineError as e:
                batch_results['rejected'] += 1
                batch_results['rejections'].append(f"{label}: {e}")
                continue

            records.append(record)
            batch_results['assembled'] += 1
            batch_results['total_amount'] += record.amount
            batch_results['total_tax'] += record.totals.total_tax
            batch_results['total_round_off'] += record.totals.round_off_delta
            if record.round_off_applied:
                batch_results['rounded'] += 1

        print("\n" + self.reporter.generate_summary_report(batch_results))

        # Show individual results
        print("\n" + "=" * 80)
        print("INDIVIDUAL RESULTS")
        print("=" * 80)

        for record in records:
            round_flag = ' ↺' if record.round_off_applied else ''
            print(f"✓ {str(record.invoice_number):20s} | "
                  f"{record.status.value:15s} | "
                  f"Items: {len(record.items):2d} | "
                  f"Tax: ₹{record.totals.total_tax:>12,.2f} | "
                  f"Total: ₹{record.amount:>12,.2f}{round_flag}")

        print("=" * 80)

        # Save batch report
        batch_report_file = Path("reports") / "batch_report.json"
        batch_report_file.parent.mkdir(exist_ok=True)
        with open(batch_report_file, 'w', encoding='utf-8') as f:
            json.dump({
                'summary': {
                    'total': batch_results['total'],
                    'assembled': batch_results['assembled'],
                    'rejected': batch_results['rejected'],
                    'rounded': batch_results['rounded'],
                },
                'invoices': [record.to_json() for record in records],
                'rejections': batch_results['rejections'],
            }, f, indent=2)

        print(f"\n💾 Batch report saved: {batch_report_file}")

    async def suggest(self, description: str):
        """Print a tax category suggestion"""

        provider = build_suggestion_provider(self.config['ai'])
        suggestion = await provider.suggest_tax_category(description)

        print(f"\n🤖 Tax Category Suggestion for: {description}")
        print(f"   Category: {suggestion.suggestion}")
        print(f"   GST Rate: {suggestion.rate}%")
        print(f"   Confidence: {suggestion.confidence:.0%}")
        print(f"   Source: {suggestion.source}")
        if suggestion.rationale:
            print(f"   Rationale: {suggestion.rationale}")

    def serve(self):
        """Run the HTTP API with uvicorn"""
        import uvicorn

        from api.app import create_app

        app_config = self.config['app']
        app = create_app(self.build_service(), self.config)

        print(f"\n🌐 Serving on http://{app_config['host']}:{app_config['port']}")
        uvicorn.run(app, host=app_config['host'], port=int(app_config['port']))


USAGE = """
GST Invoice Engine - Usage

Single Invoice:
    python main.py [submission_id]
    Example: python main.py SUB-001
    python main.py --file submission.json

Batch Processing:
    python main.py --batch                      # All sample submissions
    python main.py --category ROUNDED           # By sample category

Other:
    python main.py --suggest "description"      # Tax category suggestion
    python main.py --serve                      # Run the HTTP API

Options:
    --help          Show this help message
"""


def main():
    """Main entry point"""

    app = InvoiceEngineApp()

    # Parse command line arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == '--batch':
            app.assemble_batch()
        elif arg == '--category' and len(sys.argv) > 2:
            app.assemble_batch(category=sys.argv[2])
        elif arg == '--file' and len(sys.argv) > 2:
            with open(sys.argv[2], encoding='utf-8') as f:
                app.assemble_single(json.load(f), sys.argv[2])
        elif arg == '--suggest' and len(sys.argv) > 2:
            asyncio.run(app.suggest(" ".join(sys.argv[2:])))
        elif arg == '--serve':
            app.serve()
        elif arg == '--help':
            print(USAGE)
        else:
            # Treat as submission ID
            loader = InvoiceDataLoader(str(app.data_dir))
            try:
                submission = loader.get_submission(arg)
            except ValueError as e:
                print(f"❌ Error: {e}")
                return
            app.assemble_single(submission, arg)
    else:
        print(USAGE)


if __name__ == "__main__":
    main()
