from datetime import date

from charts import (
    fig_to_png_bytes,
    figures_to_pdf_bytes,
    plot_monthly_returns,
    plot_rolling_metric,
    plot_value_series,
)
from metrics import calculate_monthly_performance, calculate_rolling_metrics


def test_value_chart_png(make_values):
    values = make_values(date(2024, 1, 1), [1000.0, 1100.0, 1050.0, 1200.0])
    bench = make_values(date(2024, 1, 1), [4700.0, 4710.0, 4690.0, 4750.0])
    png = fig_to_png_bytes(plot_value_series(values, "Portfolio value", benchmark=bench))
    assert png.startswith(b"\x89PNG")


def test_pdf_report(make_values):
    values = make_values(date(2024, 1, 1), [100.0 + (i % 7) * 3 for i in range(60)])
    rolling = calculate_rolling_metrics(values, window=20)
    figs = [
        plot_value_series(values, "Portfolio value"),
        plot_rolling_metric(rolling, "sharpe_ratio", "Rolling Sharpe"),
        plot_rolling_metric(rolling, "volatility", "Rolling volatility"),
        plot_monthly_returns(calculate_monthly_performance(values)),
    ]
    pdf = figures_to_pdf_bytes(figs)
    assert pdf.startswith(b"%PDF")
