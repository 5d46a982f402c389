from oomdcore.types import (
    DeviceIOStat,
    DeviceType,
    IOCostCoeffs,
    KillPreference,
    LogSources,
    ResourcePressure,
    ResourceType,
    SystemContext,
)


def test_log_sources_from_mask():
    both = LogSources(3)
    assert both == LogSources.ENGINE | LogSources.PLUGINS
    assert LogSources(1) == LogSources.ENGINE
    assert LogSources(2) == LogSources.PLUGINS
    assert both & LogSources.PLUGINS
    assert not (LogSources(1) & LogSources(2))


def test_kill_preference_from_value():
    assert KillPreference(1) is KillPreference.PREFER
    assert KillPreference(-1) is KillPreference.AVOID
    assert str(KillPreference(1)) == "PREFER"
    assert str(KillPreference(-1)) == "AVOID"
    assert KillPreference(-1) < KillPreference(0) < KillPreference(1)


def test_device_io_stat_equality():
    a = DeviceIOStat(dev_id="1:10", rbytes=1111111, wbytes=2222222)
    b = DeviceIOStat(dev_id="1:10", rbytes=1111111, wbytes=2222222)
    c = DeviceIOStat(dev_id="1:11", rbytes=1111111, wbytes=2222222)
    assert a == b
    assert a != c


def test_resource_pressure_defaults_and_equality():
    p = ResourcePressure()
    assert p.total is None
    assert p == ResourcePressure(0.0, 0.0, 0.0, None)
    assert ResourcePressure(1.0, total=5) != ResourcePressure(1.0, total=6)


def test_system_context_vmstat_not_shared():
    a = SystemContext()
    b = SystemContext()
    a.vmstat["pswpout"] = 7
    assert b.vmstat == {}


def test_enums_distinct():
    assert ResourceType.MEMORY != ResourceType.IO
    assert DeviceType.HDD != DeviceType.SSD
    assert IOCostCoeffs().trimbw == 0.0