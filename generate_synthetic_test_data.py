import sys
from pathlib import Path

import numpy as np
import pandas as pd

from data_utils import points_to_frame
from ts_core import generate_historical

BASE_DIR = Path(__file__).parent / 'test_files'
SEED = 42


def _history_frame(n, seed=SEED):
	hist = points_to_frame(generate_historical(n, random_state=seed))
	return pd.DataFrame({'date': hist['date'], 'demand': hist['actual']})


def write_monthly(base_dir):
	# 24 clean monthly rows
	df = _history_frame(24)
	df.to_csv(base_dir / 'monthly.csv', index=False, date_format='%Y-%m-%d')


def write_monthly_with_gaps(base_dir):
	# 24 months with 4 months missing
	df = _history_frame(24).drop(index=[5, 6, 13, 20])
	df.to_csv(base_dir / 'monthly_with_gaps.csv', index=False, date_format='%Y-%m-%d')


def write_weekly(base_dir):
	# 40 weekly rows, several per month (averaged on import)
	rng = np.random.default_rng(SEED)
	n = 40
	dates = pd.date_range('2023-01-01', periods=n, freq='W-SUN')
	t = np.arange(n)
	value = 250 + 1.5 * t + 40 * np.sin(2 * np.pi * t / 52) + rng.normal(0, 5, n)
	df = pd.DataFrame({'date': dates, 'units': np.round(value, 2)})
	df.to_csv(base_dir / 'weekly.csv', index=False, date_format='%Y-%m-%d')


def write_semicolon_dayfirst(base_dir):
	# 18 monthly rows, ';' separated, DD/MM/YYYY dates, store column in between
	df = _history_frame(18)
	df.insert(1, 'store', 'S01')
	df.to_csv(base_dir / 'semicolon_dayfirst.csv', index=False, sep=';', date_format='%d/%m/%Y')


def write_year_month(base_dir):
	# 12 rows with YYYY-MM dates
	df = _history_frame(12)
	df['date'] = df['date'].dt.strftime('%Y-%m')
	df.to_csv(base_dir / 'year_month.csv', index=False)


WRITERS = [
	write_monthly,
	write_monthly_with_gaps,
	write_weekly,
	write_semicolon_dayfirst,
	write_year_month,
]


def main(base_dir=BASE_DIR):
	base_dir = Path(base_dir)
	base_dir.mkdir(parents=True, exist_ok=True)
	for writer in WRITERS:
		writer(base_dir)


if __name__ == '__main__':
	main(sys.argv[1] if len(sys.argv) > 1 else BASE_DIR)
