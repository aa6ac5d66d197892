"""
Executor environment construction.

Builders return ordered (name, value) lists rather than touching
os.environ; the launcher installs the result in one step right before exec.
Later entries override earlier ones with the same name.
"""
from typing import Dict, List, Mapping, Tuple

from launchpad.launch_spec import CommandInfo, LaunchSpec, ResourceURI

Environment = List[Tuple[str, str]]

REQUIRED_HANDOFF_VARIABLES = (
    "MESOS_COMMAND",
    "MESOS_WORK_DIRECTORY",
    "MESOS_FRAMEWORK_ID",
    "MESOS_EXECUTOR_ID",
)


def build_environment(spec: LaunchSpec) -> Environment:
    """
    Build the environment seen by the executor.

    Order:
    1. LIBPROCESS_PORT=0 so the executor binds an ephemeral port (the
       command's own environment may still override it)
    2. The command's environment, in declared order
    3. Sandbox/identity variables, always last

    Args:
        spec: Launch specification

    Returns:
        Ordered list of (name, value) pairs
    """
    env: Environment = [("LIBPROCESS_PORT", "0")]

    for variable in spec.command.environment:
        env.append((variable.name, variable.value))

    env.extend([
        ("MESOS_DIRECTORY", spec.work_directory),
        ("MESOS_SLAVE_PID", spec.slave_pid),
        ("MESOS_FRAMEWORK_ID", spec.framework_id),
        ("MESOS_EXECUTOR_ID", spec.executor_id),
    ])

    return env


def encode_uris(uris) -> str:
    """
    Encode resources as space-separated value+flag tokens.

    Values are not escaped: a space or '+' inside a URI value cannot be
    told apart from the separators on decode.
    """
    return " ".join(f"{uri.value}+{'1' if uri.executable else '0'}" for uri in uris)


def decode_uris(encoded: str) -> Tuple[ResourceURI, ...]:
    """Inverse of encode_uris for values without spaces."""
    uris = []
    for token in encoded.split():
        value, sep, flag = token.rpartition("+")
        if not sep:
            uris.append(ResourceURI(value=token))
        else:
            uris.append(ResourceURI(value=value, executable=(flag == "1")))
    return tuple(uris)


def build_handoff_environment(spec: LaunchSpec) -> Environment:
    """
    Build the environment for handing this launch to a secondary launcher.

    Contains the executor environment plus every launch parameter, so
    spec_from_handoff_environment() can rebuild the LaunchSpec.
    """
    env = build_environment(spec)

    env.extend([
        ("MESOS_FRAMEWORK_ID", spec.framework_id),
        ("MESOS_COMMAND", spec.command.value),
        ("MESOS_EXECUTOR_URIS", encode_uris(spec.command.uris)),
        ("MESOS_USER", spec.user),
        ("MESOS_WORK_DIRECTORY", spec.work_directory),
        ("MESOS_SLAVE_PID", spec.slave_pid),
        ("MESOS_HADOOP_HOME", spec.hadoop_home),
        ("MESOS_REDIRECT_IO", "1" if spec.redirect_io else "0"),
        ("MESOS_SWITCH_USER", "1" if spec.switch_user else "0"),
        ("MESOS_CONTAINER", spec.container),
    ])

    return env


def environment_dict(env: Environment) -> Dict[str, str]:
    """Collapse an ordered environment; the last value for a name wins."""
    result: Dict[str, str] = {}
    for name, value in env:
        result[name] = value
    return result


def spec_from_handoff_environment(environ: Mapping[str, str], frameworks_home: str = "") -> LaunchSpec:
    """
    Rebuild a LaunchSpec from a handoff environment.

    The command's own environment variables are not part of the handoff;
    they are already in the inherited process environment.

    Args:
        environ: Environment mapping (usually os.environ)
        frameworks_home: Resource root for relative URIs

    Raises:
        ValueError: If required handoff variables are missing
    """
    missing = [name for name in REQUIRED_HANDOFF_VARIABLES if not environ.get(name)]
    if missing:
        raise ValueError(f"Missing required env vars: {', '.join(missing)}")

    command = CommandInfo(
        value=environ["MESOS_COMMAND"],
        uris=decode_uris(environ.get("MESOS_EXECUTOR_URIS", ""))
    )

    return LaunchSpec(
        framework_id=environ["MESOS_FRAMEWORK_ID"],
        executor_id=environ["MESOS_EXECUTOR_ID"],
        command=command,
        user=environ.get("MESOS_USER", ""),
        work_directory=environ["MESOS_WORK_DIRECTORY"],
        slave_pid=environ.get("MESOS_SLAVE_PID", ""),
        hadoop_home=environ.get("MESOS_HADOOP_HOME", ""),
        frameworks_home=frameworks_home,
        redirect_io=environ.get("MESOS_REDIRECT_IO") == "1",
        switch_user=environ.get("MESOS_SWITCH_USER") == "1",
        container=environ.get("MESOS_CONTAINER", "")
    )
