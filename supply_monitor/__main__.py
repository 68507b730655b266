from supply_monitor.main import run

run()
