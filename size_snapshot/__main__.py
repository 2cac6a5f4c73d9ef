from size_snapshot.cli import main

raise SystemExit(main())
