from bundle_acquire.cli import main

raise SystemExit(main())
