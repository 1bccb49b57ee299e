from weatherwidget.weather.keys import cache_key


def _seed(cache, city, unit):
    cache.set(cache_key(city, unit), {"name": city, "temp": 1.0}, 3600)


class TestConfigChange:

    def test_city_change_drops_old_entry(self, invalidation, cache):
        _seed(cache, "London", "metric")
        assert invalidation.on_config_change("London", "metric", "Paris", "metric") is True
        assert cache.get(cache_key("London", "metric")) is None

    def test_unit_change_drops_old_entry(self, invalidation, cache):
        _seed(cache, "London", "metric")
        assert invalidation.on_config_change("London", "metric", "London", "imperial") is True
        assert cache.get(cache_key("London", "metric")) is None

    def test_new_entry_is_left_alone(self, invalidation, cache):
        _seed(cache, "London", "metric")
        _seed(cache, "Paris", "metric")
        invalidation.on_config_change("London", "metric", "Paris", "metric")
        assert cache.get(cache_key("Paris", "metric")) is not None

    def test_no_change_keeps_entry(self, invalidation, cache):
        _seed(cache, "London", "metric")
        assert invalidation.on_config_change("London", "metric", "London", "metric") is False
        assert cache.get(cache_key("London", "metric")) is not None

    def test_no_previous_city(self, invalidation, cache):
        assert invalidation.on_config_change("", "metric", "London", "metric") is False

    def test_unrelated_entries_survive(self, invalidation, cache):
        _seed(cache, "London", "metric")
        _seed(cache, "Berlin", "imperial")
        invalidation.on_config_change("London", "metric", "Paris", "metric")
        assert cache.get(cache_key("Berlin", "imperial")) is not None


class TestCredentialChange:

    def test_purges_all_weather_entries(self, invalidation, cache):
        _seed(cache, "London", "metric")
        _seed(cache, "Paris", "imperial")
        cache.set("unrelated", 1, 3600)

        assert invalidation.on_credential_change() == 2
        assert cache.get(cache_key("London", "metric")) is None
        assert cache.get(cache_key("Paris", "imperial")) is None
        assert cache.get("unrelated") == 1

    def test_empty_cache(self, invalidation):
        assert invalidation.on_credential_change() == 0
