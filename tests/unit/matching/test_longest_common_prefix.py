from scdemux.matching import longest_common_prefix


def test_empty_sequences():
    assert longest_common_prefix("", "") == 0
    assert longest_common_prefix("ACGT", "") == 0
    assert longest_common_prefix("", "ACGT") == 0


def test_full_equality():
    assert longest_common_prefix("ACGT", "ACGT") == 4


def test_first_character_differs():
    assert longest_common_prefix("TCGT", "ACGT") == 0


def test_single_character_divergence():
    assert longest_common_prefix("ACGA", "ACGT") == 3


def test_capped_at_shorter_sequence():
    assert longest_common_prefix("ACG", "ACGTTT") == 3
    assert longest_common_prefix("ACGTTT", "ACG") == 3


def test_start_offsets():
    assert longest_common_prefix("TTACGT", "ACGA", a_start=2) == 3
    assert longest_common_prefix("ACGT", "GGACGT", b_start=2) == 4
    assert longest_common_prefix("ACGT", "ACGT", a_start=10) == 0


def test_bytes_input():
    assert longest_common_prefix(b"ACGTT", b"ACGAT") == 3
