"""Manifest fixtures shared by the update checker tests."""

import pytest

from versionsentinel.engines.dependency_scanner.parsers.maven_pom import MavenPomParser

SHARED_POM = """\
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <properties>
    <shared.version>1.0.0</shared.version>
    <other.version>2.0.0</other.version>
  </properties>
  <dependencies>
    <dependency>
      <artifactId>libA</artifactId>
      <version>${shared.version}</version>
    </dependency>
    <dependency>
      <artifactId>libB</artifactId>
      <version>${shared.version}</version>
    </dependency>
    <dependency>
      <artifactId>libC</artifactId>
      <version>3.1.0</version>
    </dependency>
    <dependency>
      <artifactId>libD</artifactId>
      <version>${other.version}</version>
    </dependency>
  </dependencies>
</project>
"""


@pytest.fixture
def shared_pom():
    return SHARED_POM


@pytest.fixture
def manifests(shared_pom):
    return {"pom.xml": shared_pom}


@pytest.fixture
def pom_deps(shared_pom):
    """Dependencies parsed from SHARED_POM, keyed by name."""
    return {d.name: d for d in MavenPomParser().parse("pom.xml", shared_pom)}
