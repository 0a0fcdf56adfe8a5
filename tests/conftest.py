"""Shared pytest fixtures for boxfile tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


@pytest.fixture
def project_dir(tmp_path):
    """Create a project directory with a representative vagrant.yaml.

    Contains:
    - boxes catalog with one entry
    - two nodes (web, db) exercising every attribute category
    - one required plugin
    - a defaults section
    """
    (tmp_path / 'vagrant.yaml').write_text("""
boxes:
  ubuntu/focal64: https://boxes.example.test/ubuntu-focal64.box

plugins:
  - vagrant-hostmanager

defaults:
  memory: 512

nodes:
  web:
    box: ubuntu/focal64
    hostname: web1
    autostart: true
    memory: 1024
    cpus: 1
    networks:
      - private_network:
          ip: 192.0.2.10
      - public_network:
    forwarded_ports:
      - guest: 80
        host: 8080
        host-ip: 127.0.0.1
    provisioners:
      - shell:
          path: scripts/setup.sh
          arguments:
            - name: --role
              value: web
            - value: verbose
    providers:
      virtualbox:
        gui: false
    synced_folders:
      - host: ./src
        guest: /srv/app
        create: true
  db:
    box: debian/bookworm64
    hostname: db1
    memory: 2048
    cpus: 2
    chipset: ich9
""")
    return tmp_path


@pytest.fixture
def write_yaml(tmp_path):
    """Write YAML text to a file under tmp_path and return its path."""
    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path
    return _write
