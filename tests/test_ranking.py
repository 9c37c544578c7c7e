from tcapi.core.ranking import rank_descending


class TestRankDescending:
    def test_distinct_values(self):
        # Act
        ranked = rank_descending([1000, 15000, 10000], lambda value: value)

        # Assert
        assert [entry.value for entry in ranked] == [15000, 10000, 1000]
        assert [entry.rank for entry in ranked] == [1, 2, 3]
        assert [entry.diff_to_leader for entry in ranked] == [0, 5000, 14000]
        assert [entry.diff_to_next for entry in ranked] == [0, 5000, 9000]

    def test_tie_at_top_shares_rank(self):
        ranked = rank_descending([15000, 15000, 1000], lambda value: value)

        assert [entry.rank for entry in ranked] == [1, 1, 2]
        assert [entry.diff_to_leader for entry in ranked] == [0, 0, 14000]
        assert [entry.diff_to_next for entry in ranked] == [0, 0, 14000]

    def test_rank_after_several_tied_entries(self):
        ranked = rank_descending([500, 900, 900, 900, 100], lambda value: value)

        assert [entry.rank for entry in ranked] == [1, 1, 1, 2, 3]

    def test_empty(self):
        assert rank_descending([], lambda value: value) == []

    def test_value_extractor(self):
        teams = [{"name": "a", "points": 5}, {"name": "b", "points": 9}]

        ranked = rank_descending(teams, lambda team: team["points"])

        assert ranked[0].item["name"] == "b"
