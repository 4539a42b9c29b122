'''
Funnel Compass Test Suite

Test Modules:
-------------
- test_significance.py: percent change sentinels, minimum detectable change,
  significance, z-scores
- test_thresholds.py: seasonal windows, account variance, effective variance
- test_economic_impact.py: stage and drop-off dollar impact, elasticity ranking
- test_catalog.py: built-in funnels, benchmarks, advisor registry, periods
- test_funnel_walker.py: single-entity diagnostic, bottleneck, advisor isolation
- test_advisors.py: built-in advisors and summary findings
- test_correlator.py: market-wide CPM signal and budget reallocation
- test_portfolio_actions.py: action generation, risk bands and ranking
- test_runner.py: concurrent multi-platform runs with partial failure
- test_summary.py: executive summary and diagnostic report text
- test_api.py: FastAPI contract tests through TestClient

Running Tests:
--------------
    pip install -e ".[test]"
    pytest funnel_compass/tests/ -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

# This file enables pytest discovery of the tests directory

__all__ = []
