"""Small hand-written bundles shaped like the WhatsApp Web app script."""

SPEC_MODULE = '''\
    100: (e, t, n) => {
        "use strict";
        var r;
        Object.defineProperty(t, "__esModule", {value: !0}), t.Status = t.MessageSpec = t.Message$ImageMessageSpec = t.Message$Kind = t.ContactSpec = void 0;
        const a = n(5).default({READ: 2, SENT: 1, PENDING: 0});
        t.Status = a;
        const s = n(5).default({TEXT: 0, IMAGE: 1});
        t.Message$Kind = s;
        const o = {};
        t.MessageSpec = o;
        const i = (0, r.default)({}, null);
        t.Message$ImageMessageSpec = i;
        const c = {};
        t.ContactSpec = c;
        o.internalSpec = {
            id: [1, n.TYPES.STRING | n.FLAGS.REQUIRED],
            kind: [2, n.TYPES.ENUM, s],
            image: [5, n.TYPES.MESSAGE, i],
            contact: [6, n.TYPES.MESSAGE, t.ContactSpec],
            timestamps: [3, n.TYPES.UINT64 | n.FLAGS.REPEATED | n.FLAGS.PACKED],
            status: [4, n.TYPES.ENUM, a],
            __oneofs__: {content: ["image", "contact"]}
        }, i.internalSpec = {
            url: [1, n.TYPES.STRING],
            width: [2, n.TYPES.UINT32]
        }, o.internalDefaults = {kind: t.Message$Kind.TEXT}, i.internalDefaults = {width: 100};
    },'''

PLAIN_MODULE = '''\
    200: function (e, t, n) {
        "use strict";
        e.exports = 'VERSION="2.2412.50" BUILD_ID="1012345678"';
    },
    helper: (e) => {
        e.exports = {};
    },'''

SECOND_SPEC_MODULE = '''\
    300: (e, t, n) => {
        "use strict";
        Object.defineProperty(t, "__esModule", {value: !0}), t.Chat$SettingsSpec = t.ChatSpec = void 0;
        const o = {};
        t.ChatSpec = o;
        const l = {};
        t.Chat$SettingsSpec = l;
        o.internalDefaults = {unread: 0}, o.internalSpec = {
            messages: [1, n.TYPES.MESSAGE | n.FLAGS.REPEATED, n(100).MessageSpec],
            unread: [2, n.TYPES.INT32],
            settings: [3, n.TYPES.MESSAGE, l]
        }, l.internalSpec = {muted: [1, n.TYPES.BOOL]};
    }'''


def wrap_modules(*modules: str) -> str:
    """Wrap module table entries in the bundler's push call."""
    body = '\n'.join(modules)
    return ('(self.webpackChunkwhatsapp_web_client = self.webpackChunkwhatsapp_web_client || [])'
            f'.push([[42], {{\n{body}\n}}]);\n')


def spec_bundle(body: str, key: int = 1) -> str:
    """A bundle with a single spec function whose body is ``body``."""
    return wrap_modules(f'    {key}: (e, x, n) => {{\n{body}\n    }}')


APP_BUNDLE = wrap_modules(SPEC_MODULE, PLAIN_MODULE, SECOND_SPEC_MODULE)

EXPECTED_PROTO = '''\
syntax = "proto2";
package whatsapp;

message Chat {
    repeated Message messages = 1;
    optional int32 unread = 2 [default = 0];
    optional Settings settings = 3;

    message Settings {
        optional bool muted = 1;
    }
}

message Contact {
}

message Message {
    required string id = 1;
    optional Kind kind = 2 [default = TEXT];
    repeated uint64 timestamps = 3 [packed = true];
    optional Status status = 4;

    oneof content {
        ImageMessage image = 5;
        Contact contact = 6;
    }

    message ImageMessage {
        optional string url = 1;
        optional uint32 width = 2 [default = 100];
    }

    enum Kind {
        TEXT = 0;
        IMAGE = 1;
    }
}

enum Status {
    PENDING = 0;
    SENT = 1;
    READ = 2;
}'''
