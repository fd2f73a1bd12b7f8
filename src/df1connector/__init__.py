"""


Device Endpoint Sessions

- Session driver: the connection to one device over a serial link. Connects, reads a group of
  addresses and reports link events. The protocol itself lives in driver subclasses.
- Endpoint: owns a session driver for one configured port. Keeps it connected, reconnecting
  after a fixed delay when the link drops, and polls the device on a cycle timer.
- Address group: the variable names read on each cycle, translated to native addresses
  through the configured variable table.
- Cycle scheduler: issues at most one read at a time. Triggers that arrive while a read is in
  flight collapse into a single catch-up read.
- Change detector: compares each read with the last values seen and reports the variables
  that changed.
- Subscribers - receive values from an endpoint as messages, in one of the subscription modes
    All, AllSplit, Single, and their Diff variants that only deliver changes.
- Control peer - applies 'trigger' and 'cycletime' messages to an endpoint.
- discovery - lists the local serial ports.


More rough notes:

- all endpoint state is changed on the event loop thread. Blocking serial calls are run in the
  loop's executor.
- endpoint configuration is loaded with configobj, see df1connector.config.config
"""
