"""
Commands every cmsctl application ships with: help and the cli group.
"""
import json


def _dump_option(option):
    return {
        "runtime": option.runtime,
        "file": option.file,
        "synopsis": option.synopsis,
        "default": list(option.default) if option.multiple else option.default,
        "multiple": option.multiple,
        "deprecated": option.deprecated,
        "hidden": option.hidden,
        "description": option.descr,
    }


def _dump_node(tree, node):
    dump = {
        "name": node.name,
        "description": node.descr,
        "longdesc": node.longdesc,
    }
    if node.alias:
        dump["alias"] = node.alias
    if node.is_leaf:
        dump["synopsis"] = node.get_synopsis()
    else:
        dump["subcommands"] = [_dump_node(tree, child) for child in tree.list_children(node)]
    return dump


def install(app, /):
    """
    Register the built-in commands on app.
    """

    @app.command("help")
    def help(args, assoc_args):
        """
        Get help on a command.

        @synopsis [<command>...]
        """
        node = app.tree.find(args)
        if not node:
            raise app.not_found(node)
        app.reporter.render(app.describe(node))

    class Cli:
        """
        Manage the command-line tool itself.
        """

        def version(self, args, assoc_args):
            """
            Print the version.
            """
            from . import __version__
            app.reporter.line("%s %s" % (app.name, __version__))

        def param_dump(self, args, assoc_args):
            """
            Dump the list of global parameters, as JSON.
            """
            app.reporter.line(json.dumps({option.key: _dump_option(option) for option in app.spec}))

        def cmd_dump(self, args, assoc_args):
            """
            Dump the list of installed commands, as JSON.
            """
            app.reporter.line(json.dumps(_dump_node(app.tree, app.tree.root)))

    app.register("cli", Cli)
    return app


__all__ = (
    "install",
)
