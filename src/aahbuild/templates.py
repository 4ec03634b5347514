"""Startup script templates written next to the packaged binary.

Templates use ``str.format_map`` placeholders (``{AppName}``); literal braces
in the target script syntax are doubled.
"""

from __future__ import annotations

import textwrap
from collections.abc import Mapping

from aahbuild.errors import TemplateError

SHELL_SCRIPT_NAME = "aah.sh"
BATCH_SCRIPT_NAME = "aah.cmd"

SHELL_STARTUP_TEMPLATE = textwrap.dedent("""\
    #!/usr/bin/env bash

    ##############################################
    # Start and stop script for an aah application
    ##############################################

    APP_NAME="{AppName}"
    APP_ENV_PROFILE="{AppProfile}"
    APP_EXT_CONFIG=""

    if [ ! -z "$2" ]; then
      APP_ENV_PROFILE=$2
    fi

    if [ ! -z "$3" ]; then
      APP_EXT_CONFIG="-config=$3"
    fi

    # resolve links - $0 may be a softlink
    PRG="$0"
    while [ -h "$PRG" ] ; do
      ls=`ls -ld "$PRG"`
      link=`expr "$ls" : '.*-> \\(.*\\)$'`
      if expr "$link" : '/.*' > /dev/null; then
        PRG="$link"
      else
        PRG=`dirname "$PRG"`/"$link"
      fi
    done

    APP_DIR=$(cd "$(dirname $PRG)"; pwd)
    APP_EXECUTABLE="$APP_DIR"/bin/"$APP_NAME"
    APP_PID="$APP_DIR"/"$APP_NAME".pid

    if [ ! -x "$APP_EXECUTABLE" ]; then
      echo "Cannot find aah application executable: $APP_EXECUTABLE"
      exit 1
    fi

    cd "$APP_DIR"

    start() {{
      if [ -f "$APP_PID" ] && [ -s "$APP_PID" ] && [ -r "$APP_PID" ]; then
        echo "Existing PID file found during start."
        PID=`cat "$APP_PID"`
        if ps -p $PID >/dev/null 2>&1; then
          echo "$APP_NAME appears to still be running with PID $PID. Start aborted."
          ps -f -p $PID
          exit 1
        fi
      fi

      nohup "$APP_EXECUTABLE" -profile="$APP_ENV_PROFILE" "$APP_EXT_CONFIG" > appstart.log 2>&1 &
      echo "$APP_NAME started."
    }}

    stop() {{
      if [ ! -f "$APP_PID" ]; then
        echo "$APP_PID file does not exist. Stop aborted."
        exit 1
      fi
      if [ ! -s "$APP_PID" ]; then
        echo "$APP_PID file is empty and has been ignored."
        return
      fi
      PID=`cat "$APP_PID"`
      if ! kill -15 "$PID" >/dev/null 2>&1; then
        echo "$APP_PID file found but no matching process was found. Stop aborted."
        exit 1
      fi
      rm -f "$APP_PID" >/dev/null 2>&1
      echo "$APP_NAME stopped."
    }}

    version() {{
      "$APP_EXECUTABLE" -version
      echo ""
    }}

    case "$1" in
    start)
      start
      ;;
    stop)
      stop
      ;;
    restart)
      stop
      sleep 2
      start
      ;;
    version)
      version
      ;;
    *)
      echo "Usage: $0 {{start|stop|restart|version}}"
      echo ""
      exit 1
    esac

    exit 0
""")

BATCH_STARTUP_TEMPLATE = textwrap.dedent('''\
    @ECHO OFF

    REM ##############################################
    REM Start and stop script for an aah application
    REM ##############################################

    SETLOCAL ENABLEEXTENSIONS ENABLEDELAYEDEXPANSION

    SET APP_NAME={AppName}
    SET APP_ENV_PROFILE={AppProfile}
    SET APP_EXT_CONFIG=""

    IF NOT "%2" == "" (
      SET APP_ENV_PROFILE="%2"
    )

    IF NOT "%3" == "" (
      SET APP_EXT_CONFIG="-config %3"
    )

    SET APP_DIR=%~dp0
    SET APP_EXECUTABLE=%APP_DIR%bin\\%APP_NAME%.exe
    SET APP_PID=%APP_DIR%%APP_NAME%.pid

    cd %APP_DIR%

    if ""%1"" == """" GOTO :cmdUsage
    if ""%1"" == ""start"" GOTO :doStart
    if ""%1"" == ""stop"" GOTO :doStop
    if ""%1"" == ""version"" GOTO :doVersion

    :doStart
    tasklist /FI "IMAGENAME eq %APP_NAME%.exe" 2>NUL | find /I /N "%APP_NAME%.exe">NUL
    IF "%ERRORLEVEL%" == "0" (
      ECHO %APP_NAME% appears to still be running. Start aborted.
      GOTO :end
    )

    START "" /B "%APP_EXECUTABLE%" -profile "%APP_ENV_PROFILE%" "%APP_EXT_CONFIG%" > appstart.log 2>&1
    ECHO {AppName} started.
    GOTO :end

    :doStop
    SET /P PID= < %APP_PID%
    IF NOT %PID% == "" (
      taskkill /pid %PID% /f
      ECHO {AppName} stopped.
    )
    GOTO :end

    :doVersion
    %APP_EXECUTABLE% -version
    GOTO :end

    :cmdUsage
    echo Usage: %0 {{start or stop or version}}
    GOTO :end

    :end
    ENDLOCAL
''')

STARTUP_TEMPLATES: dict[str, str] = {
    SHELL_SCRIPT_NAME: SHELL_STARTUP_TEMPLATE,
    BATCH_SCRIPT_NAME: BATCH_STARTUP_TEMPLATE,
}


def render_template(name: str, template: str, variables: Mapping[str, str]) -> str:
    ordered_variables = dict(sorted(variables.items()))
    try:
        return template.format_map(ordered_variables)
    except KeyError as exc:
        raise TemplateError(
            "Startup template variables are missing required placeholders.",
            hint="Provide all placeholder keys used in the template string.",
            context={"template": name, "missing_key": str(exc)},
        ) from exc
    except ValueError as exc:
        raise TemplateError(
            "Startup template is malformed.",
            context={"template": name, "error": str(exc)},
        ) from exc
