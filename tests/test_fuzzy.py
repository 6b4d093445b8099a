from qnote.fuzzy import NEUTRAL, rank, score

def test_subsequence_is_required():
    assert score("abc", "a-b-c") > 0
    assert score("abc", "acb") == 0
    assert score("xyz", "abc") == 0
    assert score("abcd", "abc") == 0

def test_case_insensitive():
    assert score("SHOP", "shopping list") > 0
    assert score("shop", "SHOPPING LIST") == score("SHOP", "shopping list")

def test_empty_query_matches_everything():
    assert score("", "") == NEUTRAL
    assert score("", "anything") == NEUTRAL

def test_contiguous_beats_scattered():
    assert score("abc", "abcxxx") > score("abc", "axbxcx")

def test_word_boundary_beats_mid_word():
    assert score("bar", "foo bar") > score("bar", "foobar_")

def test_shorter_candidate_wins():
    assert score("note", "note") > score("note", "note with a very long tail of text after it")

def test_later_alignment_can_win():
    # the first 'a' leads to a scattered match, the second to a contiguous one
    assert score("ab", "a____ab") > score("ab", "a_____b")

def test_adjacent_pair_beats_boundary_and_start_bonuses():
    # "a_b" gets the start bonus and a boundary hit on 'b'; "x_ab" only has the run
    assert score("ab", "x_ab") > score("ab", "a_b")

def test_rank_orders_by_score_then_index():
    candidates = ["zzz", "shop", "s h o p", "shop"]
    ranked = rank("shop", candidates)
    assert [i for i, _ in ranked] == [1, 3, 2]
    assert ranked[0][1] == ranked[1][1]
    assert rank("shop", candidates) == ranked

def test_rank_empty_query_keeps_everything_in_order():
    assert [i for i, _ in rank("", ["b", "a", "c"])] == [0, 1, 2]
