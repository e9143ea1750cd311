from weatherwidget.cli import main

raise SystemExit(main())
