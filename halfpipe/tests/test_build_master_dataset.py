from build_master_dataset import HEADER, master_rows
from load_data import load_dni_resolutions, load_overview, load_performances, read_table, write_table


def sample_rows(resolutions=None):
    if resolutions is None:
        resolutions = load_dni_resolutions()
    return master_rows(load_performances(), load_overview(), resolutions)


def test_one_row_per_run_with_every_column():
    rows = sample_rows()
    assert len(rows) == 36
    assert all(list(row) == HEADER for row in rows)


def test_clean_run_is_merged():
    row = next(r for r in sample_rows() if r['competitor'] == 'Tom Avery' and r['run'] == 2)
    assert row['final_score'] == '94.25'
    assert row['run_status'] == 'clean'
    assert row['final_rank'] == 1
    assert row['qual_score'] == '89.00'
    assert row['tier'] == 'top'
    assert row['dni_reason'] == ''
    assert float(row['total_difficulty']) > 0


def test_dni_run_carries_resolution():
    row = next(r for r in sample_rows() if r['competitor'] == 'Ryo Tanaka' and r['run'] == 2)
    assert row['final_score'] == 'DNI'
    assert row['run_status'] == 'incomplete-crash'
    assert row['dni_reason'] == 'crash'
    assert row['dni_confidence'] == 'low'
    assert row['judge1_score'] == ''
    assert row['trick_count'] == 2


def test_dni_without_resolutions_is_unknown():
    row = next(r for r in sample_rows({}) if r['competitor'] == 'Ryo Tanaka' and r['run'] == 2)
    assert row['run_status'] == 'incomplete-unknown'
    assert row['dni_confidence'] == ''


def test_table_reads_back(tmp_path):
    path = tmp_path / 'master.csv'
    write_table(path, HEADER, ([row[h] for h in HEADER] for row in sample_rows()))
    assert len(read_table(path)) == 36
