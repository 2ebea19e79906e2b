"""rtmpfilter CLI - filter HTML and manage named RTMP playlists."""

import json
import sys
from pathlib import Path
from typing import Any

import fire
from rich.console import Console
from rich.table import Table

from rtmpfilter import __version__, store, yaml_ops
from rtmpfilter.config import import_settings, load_config, save_setting
from rtmpfilter.filter import RtmpFilter
from rtmpfilter.logging import configure_logging, logger
from rtmpfilter.models import FilterOptions, PlaylistRecord
from rtmpfilter.playlist_builder import PageRequirements

console = Console()


class RtmpFilterCLI:
    """RTMP streaming media filter: rewrite RTMP links in HTML into players.

    Examples:
        rtmpfilter filter page.html --course 12
        rtmpfilter playlist_add 12 "Week 1" "rtmp://media/vod/intro.mp4, Intro"
        rtmpfilter config_set hls_urlfmt fms
        rtmpfilter --json-output config
    """

    def __init__(self, verbose: bool = False, json_output: bool = False) -> None:
        """Initialize CLI with options.

        Args:
            verbose: Enable debug logging
            json_output: Output results as JSON instead of human-readable text
        """
        configure_logging(verbose)
        self._json = json_output
        logger.debug("rtmpfilter initialized with verbose={}, json={}", verbose, json_output)

    def _output(self, data: dict[str, Any]) -> dict[str, Any] | None:
        """Output result as JSON or print nothing (human output already printed)."""
        if self._json:
            print(json.dumps(data, indent=2))
        return data if self._json else None

    def version(self) -> None:
        """Show rtmpfilter version."""
        if self._json:
            self._output({"version": __version__})
        else:
            console.print(f"rtmpfilter {__version__}")

    def config(self) -> dict[str, Any] | None:
        """Show the effective filter configuration.

        Example:
            rtmpfilter config
        """
        config = load_config()
        values = config.model_dump()

        if self._json:
            return self._output({"path": str(store.get_store_path()), "settings": values})

        console.print(f"[bold]Store path:[/bold] {store.get_store_path()}")
        table = Table("Setting", "Value")
        for name, value in values.items():
            table.add_row(name, str(value))
        console.print(table)
        return None

    def config_set(self, name: str, value: str) -> dict[str, Any] | None:
        """Store one configuration option.

        Args:
            name: Option name (see `rtmpfilter config`)
            value: New value

        Example:
            rtmpfilter config_set default_cc 0
        """
        save_setting(name, value)
        if self._json:
            return self._output({"name": name, "value": str(value)})
        console.print(f"[green]Set {name} = {value}[/green]")
        return None

    def settings_import(self, file_path: str) -> dict[str, Any] | None:
        """Import options from the [filter] table of a TOML file.

        Args:
            file_path: TOML file to read

        Example:
            rtmpfilter settings_import filter.toml
        """
        values = import_settings(file_path)
        if self._json:
            return self._output({"imported": values})
        console.print(f"[green]Imported {len(values)} settings[/green]")
        return None

    def filter(
        self,
        file_path: str,
        course: int = 0,
        trusted: bool = False,
        output: str | None = None,
    ) -> dict[str, Any] | None:
        """Run the filter over an HTML fragment.

        Args:
            file_path: HTML file to filter ("-" for stdin)
            course: Course id used to resolve named playlists
            trusted: Treat the content as trusted
            output: Write the result here instead of stdout

        Example:
            rtmpfilter filter lesson.html --course 12 --output lesson.out.html
        """
        text = sys.stdin.read() if file_path == "-" else Path(file_path).read_text(encoding="utf-8")
        requirements = PageRequirements()
        rtmp_filter = RtmpFilter(load_config(), course_id=course, loader=requirements)
        result = rtmp_filter.filter(text, FilterOptions(trusted_content=trusted))

        if output:
            Path(output).write_text(result, encoding="utf-8")

        if self._json:
            modules = [{"name": name, "params": params} for name, params in requirements.modules]
            data: dict[str, Any] = {"changed": result != text, "modules": modules}
            if not output:
                data["html"] = result
            return self._output(data)

        if not output:
            print(result)
        else:
            console.print(f"[green]Wrote {output}[/green]")
        for name, params in requirements.modules:
            console.print(f"[dim]Client module {name}: {params}[/dim]")
        return None

    def playlist_add(self, course: int, name: str, *urls: str) -> dict[str, Any] | None:
        """Create or replace a named playlist.

        Args:
            course: Course id the playlist belongs to
            name: Playlist name, referenced as rtmp://playlist=NAME
            urls: Entries in "url[, title]" form

        Example:
            rtmpfilter playlist_add 12 "Week 1" "rtmp://media/vod/a.mp4, Part A" rtmp://media/vod/b.mp4
        """
        record = PlaylistRecord(course_id=course, name=name, urls="\n".join(urls))
        store.save_playlist(record)
        if self._json:
            return self._output(record.to_dict())
        console.print(f"[green]Saved playlist '{name}' ({len(urls)} entries)[/green]")
        return None

    def playlist_ls(self, course: int | None = None) -> dict[str, Any] | None:
        """List named playlists.

        Args:
            course: Only list playlists of this course

        Example:
            rtmpfilter playlist_ls --course 12
        """
        playlists = store.list_playlists(course)
        if self._json:
            return self._output({"playlists": [p.to_dict() for p in playlists]})

        if not playlists:
            console.print("[yellow]No playlists[/yellow]")
            return None
        table = Table("Course", "Name", "Entries")
        for p in playlists:
            table.add_row(str(p.course_id), p.name, str(len([line for line in p.lines if line])))
        console.print(table)
        return None

    def playlist_rm(self, course: int, name: str) -> dict[str, Any] | None:
        """Delete a named playlist.

        Example:
            rtmpfilter playlist_rm 12 "Week 1"
        """
        deleted = store.delete_playlist(course, name)
        if self._json:
            return self._output({"deleted": deleted})
        if deleted:
            console.print(f"[green]Deleted playlist '{name}'[/green]")
        else:
            console.print(f"[yellow]No playlist '{name}' in course {course}[/yellow]")
        return None

    def playlists2yaml(self, output: str | None = None, course: int | None = None) -> None:
        """Export named playlists as YAML.

        Args:
            output: Write to this file instead of stdout
            course: Only export playlists of this course

        Example:
            rtmpfilter playlists2yaml --output playlists.yaml
        """
        playlists = store.list_playlists(course)
        if output:
            yaml_ops.save_yaml(output, playlists)
            console.print(f"[green]Exported {len(playlists)} playlists to {output}[/green]")
            return None
        print(yaml_ops.playlists_to_yaml(playlists))
        return None

    def yaml2playlists(self, file_path: str) -> dict[str, Any] | None:
        """Import named playlists from YAML, replacing playlists of the same name.

        Example:
            rtmpfilter yaml2playlists playlists.yaml
        """
        playlists = yaml_ops.load_yaml(file_path)
        for record in playlists:
            store.save_playlist(record)
        if self._json:
            return self._output({"imported": len(playlists)})
        console.print(f"[green]Imported {len(playlists)} playlists[/green]")
        return None


def main() -> None:
    """CLI entry point."""
    fire.Fire(RtmpFilterCLI)


if __name__ == "__main__":
    main()
