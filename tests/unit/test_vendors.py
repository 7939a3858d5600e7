"""Unit tests for the vendor accumulator."""

import pytest

from backend.api.schemas import Vendor
from backend.core.vendors import coerce_vendor, merge, normalization_key, sort_by_rating


class TestNormalizationKey:

    @pytest.mark.parametrize("name,expected", [
        ("Acme Co.", "acmeco"),
        ("ACME CO", "acmeco"),
        ("Sai Industrial Traders (P) Ltd", "saiindustrialtraderspltd"),
        ("3M India", "3mindia"),
        ("---", ""),
        ("", ""),
    ])
    def test_keys(self, name, expected):
        assert normalization_key(name) == expected


class TestMergeDedup:

    def test_same_name_different_punctuation_and_case(self):
        first = merge([], [{"name": "Acme Co."}])
        second = merge(first, [{"name": "ACME CO"}])
        assert len(second) == 1
        assert second[0].name == "Acme Co."

    def test_duplicates_within_one_batch(self):
        merged = merge([], [{"name": "Acme Co."}, {"name": "acme co"}])
        assert [v.name for v in merged] == ["Acme Co."]

    def test_existing_vendor_kept_over_new_copy(self, sample_vendors):
        merged = merge(sample_vendors, [{"name": "deccan  flow", "rating": 1.0}])
        deccan = [v for v in merged if normalization_key(v.name) == "deccanflow"]
        assert len(deccan) == 1
        assert deccan[0].rating == 4.8

    def test_keys_recomputed_from_names_not_ids(self):
        existing = [Vendor(id="custom-id", name="Acme Co.")]
        merged = merge(existing, [{"name": "ACME CO"}])
        assert len(merged) == 1
        assert merged[0].id == "custom-id"

    def test_inputs_not_mutated(self, sample_vendors):
        before = [v.model_copy() for v in sample_vendors]
        raw = [{"name": "New Vendor"}]
        merge(sample_vendors, raw)
        assert sample_vendors == before
        assert raw == [{"name": "New Vendor"}]


class TestMergeIds:

    def test_id_derived_from_name(self):
        merged = merge([], [{"name": "Deccan Flow Controls"}])
        assert merged[0].id == "deccanflowcontrols"

    def test_explicit_id_kept(self):
        merged = merge([], [{"id": "v-17", "name": "Deccan Flow Controls"}])
        assert merged[0].id == "v-17"

    def test_existing_vendor_without_id_gets_one(self):
        merged = merge([Vendor(name="Acme Co.")], [])
        assert merged[0].id == "acmeco"


class TestMergeOrdering:

    def test_sorted_by_rating_missing_last(self):
        merged = merge([], [
            {"name": "Three", "rating": 3},
            {"name": "Unrated"},
            {"name": "Five", "rating": 5},
        ])
        assert [v.rating for v in merged] == [5, 3, None]

    def test_ties_keep_original_order(self):
        merged = merge([], [
            {"name": "A", "rating": 4},
            {"name": "B"},
            {"name": "C", "rating": 4},
            {"name": "D"},
        ])
        assert [v.name for v in merged] == ["A", "C", "B", "D"]

    def test_whole_set_resorted(self, sample_vendors):
        merged = merge(sample_vendors, [{"name": "Top Rated", "rating": 5.0}])
        assert merged[0].name == "Top Rated"
        ratings = [v.rating or 0 for v in merged]
        assert ratings == sorted(ratings, reverse=True)

    def test_sort_by_rating_stable(self):
        vendors = [Vendor(name="x", rating=0), Vendor(name="y"), Vendor(name="z", rating=0)]
        assert [v.name for v in sort_by_rating(vendors)] == ["x", "y", "z"]


class TestMergeIdempotent:

    def test_merging_twice_changes_nothing(self, sample_vendors, result_reply):
        new = [
            {"name": "Acme Valves Pvt. Ltd.", "rating": 4.2},
            {"name": "ACME CO", "rating": 2},
            {"name": "Unrated Works"},
        ]
        once = merge(sample_vendors, new)
        twice = merge(once, new)
        assert twice == once

    def test_empty_inputs(self):
        assert merge([], []) == []


class TestCoerceVendor:

    def test_string_rating_coerced(self):
        assert coerce_vendor({"name": "A", "rating": "4.5"}).rating == 4.5
        assert coerce_vendor({"name": "A", "rating": "4.5/5"}).rating == 4.5

    def test_unparseable_rating_dropped(self):
        assert coerce_vendor({"name": "A", "rating": "N/A"}).rating is None

    def test_extra_fields_ignored(self):
        vendor = coerce_vendor({"name": "A", "moq": "100 pcs"})
        assert vendor.name == "A"

    @pytest.mark.parametrize("raw", [
        "Acme",
        42,
        None,
        {"city": "Pune"},
        {"name": ""},
        {"name": "..."},
    ])
    def test_unusable_items_skipped(self, raw):
        assert coerce_vendor(raw) is None

    def test_merge_skips_unusable_items(self):
        merged = merge([], ["junk", {"city": "Pune"}, {"name": "Real Vendor"}])
        assert [v.name for v in merged] == ["Real Vendor"]
