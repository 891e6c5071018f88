from godoxy.docker_container import from_docker, from_json, image_name, is_database

UNIX_HOST = "unix:///var/run/docker.sock"


def _summary(**overrides):
    summary = {
        "Id": "abc123",
        "Names": ["/web"],
        "Image": "ghcr.io/org/webapp:latest",
        "Ports": [
            {"IP": "0.0.0.0", "PrivatePort": 80, "PublicPort": 8080, "Type": "tcp"},
            {"IP": "", "PrivatePort": 443, "PublicPort": 0, "Type": "tcp"},
        ],
        "Labels": {
            "proxy.aliases": "a, b",
            "proxy.exclude": "true",
            "proxy.idle_timeout": "1m",
            "other": "kept",
        },
        "State": "running",
        "Status": "Up 2 hours",
        "Mounts": [],
        "HostConfig": {"NetworkMode": "bridge"},
        "NetworkSettings": {"Networks": {"empty": {"IPAddress": ""}, "bridge": {"IPAddress": "172.17.0.2"}}},
    }
    summary.update(overrides)
    return summary


def test_image_name():
    assert image_name("ghcr.io/org/webapp:latest") == "webapp"
    assert image_name("nginx") == "nginx"
    assert image_name("library/redis:7") == "redis"


def test_is_database():
    assert is_database([{"Destination": "/var/lib/mysql"}], [])
    assert is_database([], [{"PrivatePort": 5432}])
    assert not is_database([{"Destination": "/data"}], [{"PrivatePort": 80}])


def test_from_docker_labels_and_fields():
    c = from_docker(_summary(), UNIX_HOST)
    assert c.container_name == "web"
    assert c.container_id == "abc123"
    assert c.image_name == "webapp"
    assert c.aliases == ["a", "b"]
    assert c.is_explicit
    assert c.is_excluded
    assert c.idle_timeout == "1m"
    assert c.labels == {"other": "kept"}
    assert c.running
    assert c.network_mode == "bridge"


def test_from_docker_ports_and_ips():
    c = from_docker(_summary(), UNIX_HOST)
    assert set(c.public_port_mapping) == {"8080"}
    assert set(c.private_port_mapping) == {"80", "443"}
    assert c.public_ip == "127.0.0.1"
    assert c.private_ip == "172.17.0.2"


def test_default_alias_is_name():
    c = from_docker(_summary(Labels={}), UNIX_HOST)
    assert c.aliases == ["web"]
    assert not c.is_explicit
    assert not c.is_excluded


def test_remote_host_and_stopped():
    remote = from_docker(_summary(), "tcp://10.0.0.5:2375")
    assert remote.public_ip == "10.0.0.5"
    assert remote.private_ip == ""
    stopped = from_docker(_summary(State="exited", Status="Exited (0)"), UNIX_HOST)
    assert not stopped.running
    assert stopped.public_ip == ""


def test_database_detected_from_summary():
    c = from_docker(_summary(Mounts=[{"Destination": "/var/lib/postgresql/data"}]), UNIX_HOST)
    assert c.is_database


def test_from_json():
    inspect = {
        "Id": "def456",
        "Name": "/db",
        "Image": "postgres:16",
        "Config": {"Labels": {"proxy.stop_method": "pause"}},
        "State": {"Status": "running"},
        "Mounts": [],
        "HostConfig": {"NetworkMode": "host"},
        "NetworkSettings": {
            "Ports": {"5432/tcp": [{"HostIp": "0.0.0.0", "HostPort": "15432"}], "9000": None},
            "Networks": {"bridge": {"IPAddress": "172.17.0.3"}},
        },
    }
    c = from_json(inspect, UNIX_HOST)
    assert c.container_name == "db"
    assert c.image_name == "postgres"
    assert c.stop_method == "pause"
    assert c.network_mode == "host"
    assert c.running
    assert set(c.private_port_mapping) == {"5432", "9000"}
    assert c.private_port_mapping["9000"]["Type"] == "tcp"
    assert c.public_port_mapping["15432"]["PrivatePort"] == 5432
    assert c.is_database
    assert c.private_ip == "172.17.0.3"