"""
Tests for individual transformations and terminal operations.
"""

import pytest

from lazy import LazyCollection


class Team:
    def __init__(self, name):
        self.name = name

    def __str__(self):
        return f"team:{self.name}"


class TestEach:
    """Test each() and its early stop"""
    
    def test_stops_on_false(self):
        """Test that returning False stops after the current item"""
        seen = []
        
        def visit(value):
            seen.append(value)
            return value != 3
        
        LazyCollection([1, 2, 3, 4]).each(visit)
        assert seen == [1, 2, 3]
    
    @pytest.mark.parametrize("falsy", [0, "", None, [], 0.0])
    def test_only_false_stops(self, falsy):
        """Test that other falsy return values do not stop the walk"""
        seen = []
        LazyCollection([1, 2, 3]).each(lambda value: seen.append(value) or falsy)
        assert seen == [1, 2, 3]
    
    def test_receives_keys_and_returns_collection(self):
        """Test that each() passes keys and returns the same collection"""
        pairs = []
        collection = LazyCollection({"a": 1, "b": 2})
        
        returned = collection.each(lambda value, key: pairs.append((key, value)))
        
        assert returned is collection
        assert pairs == [("a", 1), ("b", 2)]


class TestLookups:
    """Test get, first, last and is_empty"""
    
    def test_get_by_key(self):
        collection = LazyCollection({"a": 1, "b": 2})
        assert collection.get("b") == 2
        assert collection.get("missing") is None
        assert collection.get("missing", "fallback") == "fallback"
    
    def test_get_matches_numeric_strings_loosely(self):
        """Test that '1' and 1 address the same key"""
        assert LazyCollection(["a", "b"]).get("1") == "b"
        assert LazyCollection({"1": "x"}).get(1) == "x"
        assert LazyCollection({"01": "x"}).get(1) is None
    
    def test_get_none_returns_default(self):
        """Test that a None key never matches"""
        assert LazyCollection({None: "value"}).get(None, "default") == "default"
    
    def test_first(self):
        collection = LazyCollection([5, 8, 11])
        assert collection.first() == 5
        assert collection.first(lambda x: x > 6) == 8
        assert collection.first(lambda x: x > 100, default=-1) == -1
        assert LazyCollection.empty().first() is None
    
    def test_first_with_key_predicate(self):
        collection = LazyCollection({"a": 1, "b": 2, "c": 3})
        assert collection.first(lambda value, key: key == "c") == 3
    
    def test_last(self):
        collection = LazyCollection([5, 8, 11])
        assert collection.last() == 11
        assert collection.last(lambda x: x < 10) == 8
        assert collection.last(lambda x: x > 100, default=-1) == -1
    
    def test_last_distinguishes_none_from_missing(self):
        """Test that a None item is returned rather than the default"""
        assert LazyCollection([None]).last(default="default") is None
        assert LazyCollection([]).last(default=42) == 42
    
    def test_first_stops_pulling(self, counting_producer):
        """Test that first() stops at the first match"""
        producer = counting_producer(range(100))
        LazyCollection(producer).first(lambda x: x == 2)
        assert producer.pulled == 3
    
    def test_is_empty(self):
        assert LazyCollection.empty().is_empty()
        assert not LazyCollection([0]).is_empty()
        assert LazyCollection([1, 2]).filter(lambda x: x > 5).is_empty()
    
    def test_is_empty_does_not_move_cached_cursor(self):
        """Test that is_empty() on a cached collection keeps later reads complete"""
        collection = LazyCollection(iter([(0, "a"), (1, "b")]), use_cache=True)
        
        assert not collection.is_empty()
        assert collection.to_list() == ["a", "b"]


class TestKeyOperations:
    """Test key_by, keys and values"""
    
    def test_key_by(self):
        items = [{"id": 7, "n": "x"}, {"id": 9, "n": "y"}]
        result = LazyCollection(items).key_by(lambda item: item["id"]).to_dict()
        assert result == {7: items[0], 9: items[1]}
    
    def test_key_by_stringifies_objects(self):
        """Test that non-primitive keys become their string form"""
        teams = [Team("red"), Team("blue")]
        result = LazyCollection(teams).key_by(lambda team: team).to_dict()
        assert list(result) == ["team:red", "team:blue"]
    
    def test_key_by_keeps_primitive_keys(self):
        result = LazyCollection(["a", "b"]).key_by(lambda value, key: (key, value)).to_dict()
        assert result == {(0, "a"): "a", (1, "b"): "b"}
    
    def test_keys_and_values_are_reindexed(self):
        collection = LazyCollection({"x": 10, "y": 20})
        assert collection.keys().to_dict() == {0: "x", 1: "y"}
        assert collection.values().to_dict() == {0: 10, 1: 20}
    
    def test_values_after_filter(self):
        result = LazyCollection([1, 2, 3, 4]).filter(lambda x: x % 2 == 0).values().to_dict()
        assert result == {0: 2, 1: 4}


class TestGroupBy:
    """Test group_by"""
    
    def test_groups_in_first_seen_order(self):
        items = [{"t": "a", "v": 1}, {"t": "a", "v": 2}, {"t": "b", "v": 3}]
        grouped = LazyCollection(items).group_by(lambda item: item["t"])
        
        assert grouped.to_dict() == {
            "a": {0: items[0], 1: items[1]},
            "b": {2: items[2]},
        }
        assert list(grouped.keys()) == ["a", "b"]
    
    def test_groups_are_collections(self):
        grouped = LazyCollection([1, 2, 3, 4]).group_by(lambda x: x % 2)
        
        odd = grouped.get(1)
        assert isinstance(odd, LazyCollection)
        assert odd.to_list() == [1, 3]
    
    @pytest.mark.parametrize("bad_key", [1.5, None, True, object(), ("a",)])
    def test_non_string_non_integer_keys_are_dropped(self, bad_key):
        """Test that items with unusable group keys are left out"""
        result = LazyCollection([1, 2]).group_by(lambda x: "ok" if x == 1 else bad_key).to_dict()
        assert result == {"ok": {0: 1}}
    
    def test_grouping_is_eager(self, counting_producer):
        """Test that group_by consumes its source immediately"""
        producer = counting_producer([1, 2, 3])
        LazyCollection(producer).group_by(lambda x: x)
        assert producer.runs == 1
        assert producer.pulled == 3


class TestReorderingAndMaterializing:
    """Test reverse, load and to_dict"""
    
    def test_reverse_keeps_keys(self):
        result = LazyCollection([1, 2, 3]).reverse().to_dict()
        assert list(result.items()) == [(2, 3), (1, 2), (0, 1)]
    
    def test_reverse_links_previous(self):
        collection = LazyCollection([1])
        assert collection.reverse().previous is collection
    
    def test_load_runs_source_once(self, counting_producer):
        """Test that a loaded collection no longer touches its source"""
        producer = counting_producer([1, 2, 3])
        loaded = LazyCollection(producer).map(lambda x: x + 1).load()
        
        assert loaded.to_list() == [2, 3, 4]
        assert loaded.to_list() == [2, 3, 4]
        assert producer.runs == 1
        assert loaded.previous is None
    
    def test_to_dict_with_item_callback(self):
        result = LazyCollection({"a": 1, "b": 2}).to_dict(lambda value, key: f"{key}{value}")
        assert result == {"a": "a1", "b": "b2"}
    
    def test_to_dict_materializes_nested_collections(self):
        grouped = LazyCollection([1, 2, 3]).group_by(lambda x: "odd" if x % 2 else "even")
        
        assert grouped.to_dict(lambda x: x * 10) == {
            "odd": {0: 10, 2: 30},
            "even": {1: 20},
        }
    
    def test_recursive_map_reaches_nested_collections(self):
        nested = LazyCollection({"inner": LazyCollection([1, 2]), "plain": 3})
        result = nested.map(lambda x: x * 2, recursive=True).to_dict()
        assert result == {"inner": {0: 2, 1: 4}, "plain": 6}


class TestDefer:
    """Test deferred evaluation with defer()"""
    
    def test_factory_runs_on_iteration(self):
        calls = []
        
        def total(collection):
            calls.append(collection)
            return collection.sum()
        
        base = LazyCollection([1, 2, 3])
        deferred = base.defer(total)
        assert calls == []
        
        assert deferred.to_dict() == {0: 6}
        assert calls == [base]
    
    def test_none_becomes_empty(self):
        assert LazyCollection([1]).defer(lambda: None).to_list() == []
    
    def test_collection_result_is_flattened(self):
        deferred = LazyCollection([3, 1, 2]).defer(lambda c: c.filter(lambda x: x > 1))
        assert deferred.to_dict() == {0: 3, 2: 2}
    
    def test_scalar_result_is_single_item(self):
        assert LazyCollection.empty().defer(lambda: "value").to_dict() == {0: "value"}


class TestArgumentChecks:
    """Test invalid arguments to chunk and page"""
    
    @pytest.mark.parametrize("size", [0, -1])
    def test_chunk_size_must_be_positive(self, size):
        with pytest.raises(ValueError):
            LazyCollection([1]).chunk(size)
    
    def test_page_number_is_one_indexed(self):
        with pytest.raises(ValueError):
            LazyCollection([1]).page(0, 10)


class TestLineage:
    """Test provenance links between collections"""
    
    def test_lineage_walks_back_to_root(self):
        root = LazyCollection([1, 2, 3])
        mapped = root.map(lambda x: x)
        filtered = mapped.filter()
        
        assert list(filtered.lineage()) == [filtered, mapped, root]
        assert root.previous is None
