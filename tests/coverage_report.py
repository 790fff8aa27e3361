# File: tests/coverage_report.py
#!/usr/bin/env python3
"""
Measure test coverage of the smartpark package.
Requires the test extra: pip install -e .[test]
"""

import argparse
import sys
from pathlib import Path

import coverage

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))


def generate_coverage_report(html: bool = False, fail_under: float = 0.0) -> int:
    """Run every suite under coverage and print a per-module report"""
    cov = coverage.Coverage(
        source=['smartpark'],
        omit=['*/tests/*', '*/__main__.py'],
        branch=True
    )
    cov.start()

    try:
        from tests.run_tests import run_all_tests
        result = run_all_tests()
    finally:
        cov.stop()
        cov.save()

    print("\n" + "=" * 60)
    print("SmartPark Coverage Report")
    print("=" * 60)
    total = cov.report(show_missing=True)

    if html:
        cov.html_report(directory='htmlcov')
        print("HTML report generated in 'htmlcov' directory")

    if not result.wasSuccessful():
        return 1
    if total < fail_under:
        print(f"Coverage {total:.1f}% is below the required {fail_under:.1f}%")
        return 2
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Run the SmartPark tests under coverage')
    parser.add_argument('--html', action='store_true', help='Also write an HTML report')
    parser.add_argument('--fail-under', type=float, default=0.0,
                        help='Exit non-zero when total coverage is below this percentage')
    args = parser.parse_args()
    sys.exit(generate_coverage_report(args.html, args.fail_under))
