from .nightly_job import run_nightly_job, build_demand_series, analyze_seasonality, forecast_and_recommend
