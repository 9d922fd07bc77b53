"""Tests for the lcmgen command line."""

import os
import time

import pytest

from tools.lcmgen.__main__ import main, needs_generation

from conftest import GEOMETRY_LCM, GRAPH_LCM


@pytest.fixture
def lcm_files(tmp_path):
    geometry = tmp_path / "geometry.lcm"
    geometry.write_text(GEOMETRY_LCM)
    graph = tmp_path / "graph.lcm"
    graph.write_text(GRAPH_LCM)
    return [str(geometry), str(graph)]


class TestGenerate:
    def test_python_module_written(self, lcm_files, tmp_path, capsys):
        outdir = tmp_path / "gen"
        main(lcm_files + ["--outdir", str(outdir)])
        module = outdir / "lcmtypes.py"
        assert module.exists()
        text = module.read_text()
        assert "class geometry_point_t(object):" in text
        assert "class graph_node_t(object):" in text
        assert "Generated by lcmgen from geometry.lcm, graph.lcm." in text

        out = capsys.readouterr().out
        assert f"wrote {module}" in out
        assert "Generated 1 file(s) for 7 type(s)" in out
        assert "geometry.point_t: fingerprint=0x" in out

    def test_module_name(self, lcm_files, tmp_path):
        outdir = tmp_path / "gen"
        main(lcm_files + ["--outdir", str(outdir), "--module", "msgs"])
        assert (outdir / "msgs.py").exists()

    def test_matlab_only(self, lcm_files, tmp_path):
        outdir = tmp_path / "gen"
        main(lcm_files + ["--outdir", str(outdir), "--matlab", "--no-python"])
        names = set(os.listdir(outdir))
        assert "lcmtypes.py" not in names
        assert "geometry_point_t_encode.m" in names
        assert len(names) == 9 * 7

    def test_config_file(self, lcm_files, tmp_path):
        config = tmp_path / "lcmgen.yaml"
        config.write_text("python:\n  module: from_config\nmatlab:\n  enabled: true\n")
        outdir = tmp_path / "gen"
        main(lcm_files + ["--outdir", str(outdir), "--config", str(config)])
        assert (outdir / "from_config.py").exists()
        assert (outdir / "graph_tree_t_new.m").exists()

    def test_flag_overrides_config(self, lcm_files, tmp_path):
        config = tmp_path / "lcmgen.yaml"
        config.write_text("python:\n  module: from_config\n")
        outdir = tmp_path / "gen"
        main(lcm_files + ["--outdir", str(outdir), "--config", str(config),
                          "--module", "from_flag"])
        assert (outdir / "from_flag.py").exists()
        assert not (outdir / "from_config.py").exists()


class TestLazy:
    def test_needs_generation_missing_output(self, lcm_files, tmp_path):
        assert needs_generation(lcm_files, str(tmp_path / "absent.py"))

    def test_needs_generation_stale_output(self, lcm_files, tmp_path):
        output = tmp_path / "out.py"
        output.write_text("")
        old = time.time() - 100
        os.utime(output, (old, old))
        assert needs_generation(lcm_files, str(output))

    def test_needs_generation_fresh_output(self, lcm_files, tmp_path):
        output = tmp_path / "out.py"
        output.write_text("")
        new = time.time() + 100
        os.utime(output, (new, new))
        assert not needs_generation(lcm_files, str(output))

    def test_lazy_skips_fresh_output(self, lcm_files, tmp_path, capsys):
        outdir = tmp_path / "gen"
        main(lcm_files + ["--outdir", str(outdir)])
        module = outdir / "lcmtypes.py"
        new = time.time() + 100
        os.utime(module, (new, new))
        capsys.readouterr()

        main(lcm_files + ["--outdir", str(outdir), "--lazy"])
        out = capsys.readouterr().out
        assert f"skipped {module}" in out
        assert "Generated 0 file(s)" in out


class TestErrors:
    def test_syntax_error_exits(self, tmp_path, capsys):
        bad = tmp_path / "bad.lcm"
        bad.write_text("struct a_t { int32_t x }")
        with pytest.raises(SystemExit) as exc:
            main([str(bad), "--outdir", str(tmp_path / "gen")])
        assert exc.value.code == 1
        assert "Error: Line 1" in capsys.readouterr().out

    def test_validation_error_exits(self, tmp_path, capsys):
        bad = tmp_path / "bad.lcm"
        bad.write_text("struct a_t { missing_t m; }")
        with pytest.raises(SystemExit) as exc:
            main([str(bad), "--outdir", str(tmp_path / "gen")])
        assert exc.value.code == 1
        assert "unknown type" in capsys.readouterr().out

    def test_missing_input_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            main([str(tmp_path / "nope.lcm"), "--outdir", str(tmp_path / "gen")])
        assert exc.value.code == 1
        assert "Error:" in capsys.readouterr().out

    def test_bad_module_name_exits(self, lcm_files, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            main(lcm_files + ["--outdir", str(tmp_path / "gen"), "--module", "a-b"])
        assert exc.value.code == 1
        assert "--module must be a Python identifier" in capsys.readouterr().out

    def test_missing_outdir_is_usage_error(self, lcm_files):
        with pytest.raises(SystemExit) as exc:
            main(lcm_files)
        assert exc.value.code == 2
