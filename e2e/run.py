import csv
import sys
from datetime import datetime
from pathlib import Path

import common.flags as FLAG
from scenario.scenario import (ScenarioParams, buildScenario, dumpScenario,
                               installScenario)
from sim.engine import InMemoryEngine


def runScenario(logpath, params=None):
    '''
    Builds the scenario, runs it on the in-memory engine and dumps results
    under `logpath`. Returns the engine after the run.
    '''
    logpath = Path(logpath)
    logpath.mkdir(parents=True, exist_ok=True)
    params = params if params else ScenarioParams.fromFlags()

    # Builds topology, addresses and flows.
    scenario = buildScenario(params)
    dumpScenario(scenario, logpath / 'scenario.textproto')
    print(f'{datetime.now()} [Step 1] scenario generated.', flush=True)

    # Installs the scenario and computes routes.
    engine = InMemoryEngine()
    installScenario(engine, scenario)
    print(f'{datetime.now()} [Step 2] scenario installed.', flush=True)

    # Runs the simulation until the end of the active window.
    engine.run(stop_time=params.active_window[1])
    print(f'{datetime.now()} [Step 3] simulation finished at {engine.now} s.',
          flush=True)

    # Dumps stats.
    with (logpath / 'flows.csv').open('w', newline='') as flows:
        writer = csv.writer(flows)
        writer.writerow(['flow', 'dst address', 'dst port', 'on periods',
                         'on time (sec)', 'tx bytes', 'rx bytes', 'hops'])
        for flow in scenario.flows:
            stats = engine.stats[flow.name]
            writer.writerow([flow.name, f'{flow.dst_address}', flow.dst_port,
                             len(flow.on_periods), f'{stats.on_time}',
                             stats.tx_bytes, stats.rx_bytes, len(stats.path)])
    print(f'{datetime.now()} [Step 4] dump flow stats to flows.csv', flush=True)

    duration = params.active_window[1] - params.active_window[0]
    with (logpath / 'links.csv').open('w', newline='') as links:
        writer = csv.writer(links)
        writer.writerow(['link name', 'link class', 'subnet', 'tx bytes',
                         'avg util'])
        for link in engine.getLinks():
            util = link.tx_bytes * 8 / (link.link_class.data_rate * duration)
            writer.writerow([link.name, link.link_class.name, f'{link.subnet}',
                             link.tx_bytes, f'{util}'])
    print(f'{datetime.now()} [Step 5] dump link stats to links.csv', flush=True)
    return engine


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(f'[ERROR] usage: {sys.argv[0]} <log dir>')
        sys.exit(1)
    runScenario(Path(sys.argv[1]) / FLAG.NETNAME)
