import numpy as np
import pandas as pd
import pytest

from firerecovery.recovery.recovery_stats import recovery_ratio, severity_quantiles, summarize_by_class


@pytest.fixture
def records():
    return pd.DataFrame({
        'plot_id': [1, 2, 3, 4, 5],
        'severity_class': [1, 1, 4, 4, np.nan],
        '2016': [0.8, 0.6, 0.7, 0.0, 0.5],
        '2018': [0.8, 0.4, 0.2, 0.1, 0.5],
    })


def test_summarize_by_class(records):
    summary = summarize_by_class(records, ['2016', '2018'], 'severity_class')

    assert list(summary.columns) == ['severity_class', 'variable', 'mean', 'std', 'count']
    # Plot 5 has no class and is dropped
    assert len(summary) == 4
    row = summary[(summary['severity_class'] == 4) & (summary['variable'] == '2018')].iloc[0]
    assert row['mean'] == pytest.approx(0.15)
    assert row['count'] == 2


def test_recovery_ratio(records):
    ratios = recovery_ratio(records, '2016', ['2018'])
    assert '2018_ratio' in ratios.columns
    assert '2018_ratio' not in records.columns
    assert ratios['2018_ratio'].iloc[0] == pytest.approx(1.0)
    assert ratios['2018_ratio'].iloc[2] == pytest.approx(0.2 / 0.7)
    # Zero pre-fire value
    assert np.isnan(ratios['2018_ratio'].iloc[3])


def test_severity_quantiles(records):
    quants = severity_quantiles(records, '2018', quantiles=[0.5, 0.9])
    assert list(quants) == ['Q50', 'Q90']
    assert quants['Q50'] == pytest.approx(0.4)

    empty = severity_quantiles(records.iloc[0:0], '2018')
    assert list(empty) == ['Q10', 'Q25', 'Q50', 'Q75', 'Q90']
    assert all(np.isnan(v) for v in empty.values())
